# src/reelextract/logging/handlers.py — v1
"""Handler plumbing shared by every reelextract log destination.

RunContextFilter stamps each record with the run it belongs to, using the
same field names as RunRecord and StepRecord so a log line can be matched
to its ledger entry. The file destination rotates by size.
"""

from __future__ import annotations

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

from reelextract.logging.context import get_context

# Record attributes set by RunContextFilter, in output order.
CONTEXT_FIELDS: tuple[str, ...] = ("run_id", "video", "stage", "step")

_SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([KMG]?B)$", re.IGNORECASE)
_SIZE_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


class RunContextFilter(logging.Filter):
    """Copy the current run context onto each record; never drops a record.

    Values passed explicitly through ``extra=`` win over the context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_context()
        for name in CONTEXT_FIELDS:
            if getattr(record, name, None) is None:
                setattr(record, name, getattr(ctx, name))
        return True


def parse_size(text: str) -> int:
    """``'10MB'`` -> bytes. Accepts B/KB/MB/GB and decimals (``'1.5MB'``)."""
    match = _SIZE_RE.match(text.strip())
    if match is None:
        raise ValueError(f"Invalid size {text!r}, expected e.g. '10MB'")
    return int(float(match.group(1)) * _SIZE_UNITS[match.group(2).upper()])


def rotating_file_handler(path: str | Path, rotation: str, backups: int) -> RotatingFileHandler:
    """Size-rotated UTF-8 log file; parent directories are created."""
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        target, maxBytes=parse_size(rotation), backupCount=backups, encoding="utf-8",
    )
