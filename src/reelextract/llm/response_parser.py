# src/reelextract/llm/response_parser.py — v1
"""Parse raw model text into validated records.

Raw text is expected to be JSON, optionally wrapped in ``` fences. Parsing
is strict: any JSON or schema error becomes a ResponseParseFailure, which
callers absorb with a stage-specific default.
"""

from __future__ import annotations

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from reelextract.core.errors import ResponseParseFailure

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)


def strip_fences(text: str) -> str:
    """Remove markdown code fence markers."""
    return _FENCE_RE.sub("", text).strip()


def parse_json(text: str) -> Any:
    """Strip fences and parse JSON strictly.

    Raises:
        ResponseParseFailure: If the cleaned text is not valid JSON.
    """
    cleaned = strip_fences(text or "")
    if not cleaned:
        raise ResponseParseFailure("Empty model response", raw_text=text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ResponseParseFailure(f"JSON parse failed: {exc}", raw_text=text) from exc


def parse_model(text: str, model_cls: type[ModelT]) -> ModelT:
    """Parse raw text into a pydantic record.

    Raises:
        ResponseParseFailure: On invalid JSON, a non-object payload, or
            schema validation errors.
    """
    data = parse_json(text)
    if not isinstance(data, dict):
        raise ResponseParseFailure(
            f"Expected JSON object, got {type(data).__name__}", raw_text=text
        )
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise ResponseParseFailure(
            f"Schema validation failed for {model_cls.__name__}: "
            f"{exc.error_count()} error(s)",
            raw_text=text,
        ) from exc
