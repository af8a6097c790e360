# src/reelextract/ledger/local_writer.py — v1
"""Local filesystem output writer (default backend)."""

from __future__ import annotations

import os
from pathlib import Path

from reelextract.ledger.base_output_writer import BaseOutputWriter


class LocalWriter(BaseOutputWriter):
    """Write ledger records to the local filesystem."""

    def __init__(self, base_path: str | None = None) -> None:
        """Initialize with optional base path.

        Args:
            base_path: Root directory for all writes. If None, paths are absolute.
        """
        self._base = Path(base_path) if base_path else None

    def _resolve(self, path: str) -> Path:
        if self._base is not None:
            return self._base / path
        return Path(path)

    async def write(self, path: str, content: bytes | str) -> None:
        """Write content atomically (temp file + rename)."""
        p = self._resolve(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        tmp = p.with_name(f".{p.name}.tmp")
        if isinstance(content, bytes):
            tmp.write_bytes(content)
        else:
            tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, p)

    async def read(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    async def exists(self, path: str) -> bool:
        return self._resolve(path).exists()
