# src/reelextract/llm/adapters/google_adapter.py — v1
"""Google Gemini adapter: analysis client + File API media service.

Uses the google-generativeai SDK. Synchronous File API calls run in a
worker thread so the event loop keeps serving concurrent stages.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from google.api_core import exceptions as google_exceptions

from reelextract.core.errors import RemoteCallFailure
from reelextract.llm.base_client import BaseAnalysisClient, BaseMediaService
from reelextract.llm.models import ImageInput, LLMResponse, Tier
from reelextract.media.models import MediaHandle, RemoteFile

# SDK errors that count as a broken remote call.
_REMOTE_ERRORS: tuple[type[BaseException], ...] = (
    google_exceptions.GoogleAPIError,
    OSError,
    ValueError,
)


def _generation_errors(genai: Any) -> tuple[type[BaseException], ...]:
    """Remote errors plus the SDK's safety-block exceptions for generate_content."""
    return _REMOTE_ERRORS + (
        genai.types.BlockedPromptException,
        genai.types.StopCandidateException,
    )

_STATE_MAP = {
    "PROCESSING": "processing",
    "ACTIVE": "active",
    "FAILED": "failed",
}


def _to_remote_file(file: Any) -> RemoteFile:
    state = getattr(file, "state", None)
    state_name = getattr(state, "name", str(state or "")).upper()
    return RemoteFile(
        name=file.name,
        uri=getattr(file, "uri", ""),
        mime_type=getattr(file, "mime_type", ""),
        state=_STATE_MAP.get(state_name, "unknown"),  # type: ignore[arg-type]
    )


class GoogleAdapter(BaseAnalysisClient):
    """Gemini analysis client with a precise and a fast tier."""

    def __init__(
        self,
        precise_model: str = "gemini-3-pro-preview",
        fast_model: str = "gemini-3-flash-preview",
        api_key: str = "",
        max_output_tokens: int = 8192,
        **kwargs: Any,
    ):
        self._models: dict[Tier, str] = {"precise": precise_model, "fast": fast_model}
        self._api_key = api_key
        self._max_output_tokens = max_output_tokens

    def model_for(self, tier: Tier) -> str:
        return self._models[tier]

    async def analyze(
        self,
        handle: MediaHandle,
        instruction: str,
        tier: Tier,
        model: str | None = None,
    ) -> LLMResponse:
        parts: list[Any] = [
            {"file_data": {"mime_type": handle.mime_type, "file_uri": handle.uri}},
            {"text": instruction},
        ]
        return await self._generate(parts, tier, model or self.model_for(tier))

    async def analyze_images(
        self,
        images: list[ImageInput],
        instruction: str,
        tier: Tier,
        model: str | None = None,
    ) -> LLMResponse:
        parts: list[Any] = [
            {"inline_data": {"mime_type": img.media_type, "data": img.data}}
            for img in images
        ]
        parts.append({"text": instruction})
        return await self._generate(parts, tier, model or self.model_for(tier))

    async def _generate(self, parts: list[Any], tier: Tier, model_name: str) -> LLMResponse:
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(model_name)

        t0 = time.monotonic()
        try:
            resp = await model.generate_content_async(
                parts, generation_config={"max_output_tokens": self._max_output_tokens},
            )
            text = resp.text or ""
        except _generation_errors(genai) as exc:
            raise RemoteCallFailure(f"generate_content[{model_name}]", str(exc)) from exc
        latency = int((time.monotonic() - t0) * 1000)

        usage = getattr(resp, "usage_metadata", None)
        return LLMResponse(
            content=text,
            input_tokens=getattr(usage, "prompt_token_count", 0) if usage else 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) if usage else 0,
            model=model_name,
            provider="google",
            tier=tier,
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "google"


class GoogleFileService(BaseMediaService):
    """Gemini File API wrapper."""

    def __init__(self, api_key: str = "", **kwargs: Any):
        self._api_key = api_key

    async def _call(self, operation: str, fn_name: str, *args: Any, **kwargs: Any) -> Any:
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        fn = getattr(genai, fn_name)
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except _REMOTE_ERRORS as exc:
            raise RemoteCallFailure(operation, str(exc)) from exc

    async def upload(self, path: str, mime_type: str, display_name: str) -> RemoteFile:
        file = await self._call(
            "upload_file", "upload_file", path, mime_type=mime_type, display_name=display_name,
        )
        return _to_remote_file(file)

    async def get(self, name: str) -> RemoteFile:
        return _to_remote_file(await self._call("get_file", "get_file", name))

    async def delete(self, name: str) -> None:
        await self._call("delete_file", "delete_file", name)
