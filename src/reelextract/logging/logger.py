# src/reelextract/logging/logger.py — v1
"""Logging setup for the reelextract CLI and library callers.

JSON lines carry the run context as top-level ``run_id``/``video``/``stage``/
``step`` keys, so ``grep <run_id>`` over a log file finds the same run as
``reelextract show <run_id>``. Modules log through
``logging.getLogger(__name__)``; only setup_logging() touches handlers.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from reelextract.logging.handlers import CONTEXT_FIELDS, RunContextFilter, rotating_file_handler

if TYPE_CHECKING:
    from reelextract.config.settings import Settings

ROOT_LOGGER = "reelextract"

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("google", "urllib3", "grpc", "httpx")


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """``12:00:01 INFO     reelextract.x <abcd1234> [menu_pass1/step] message``"""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s %(levelname)-8s %(name)s%(run_tag)s %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        record.run_tag = _run_tag(record)
        return super().format(record)


def _run_tag(record: logging.LogRecord) -> str:
    tag = ""
    run_id = getattr(record, "run_id", None)
    if run_id:
        # yyyymmdd_hhmmss_<uuid8>: the suffix alone identifies the run
        tag += f" <{run_id.rsplit('_', 1)[-1]}>"
    stage = getattr(record, "stage", None)
    if stage:
        step = getattr(record, "step", None)
        tag += f" [{stage}/{step}]" if step else f" [{stage}]"
    return tag


def setup_logging(settings: Settings, verbose: bool = False) -> None:
    """(Re)configure the ``reelextract`` logger from settings.

    Safe to call repeatedly: previous handlers are closed and replaced.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(logging.DEBUG if verbose else settings.log_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.log_file is not None:
        handlers.append(
            rotating_file_handler(settings.log_file, settings.log_rotation, settings.log_retention)
        )

    formatter = JsonFormatter() if settings.log_format == "json" else TextFormatter()
    context_filter = RunContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
