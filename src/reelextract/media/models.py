# src/reelextract/media/models.py — v1
"""Media types: RemoteFile (provider view) and MediaHandle (pipeline view)."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ReadinessState = Literal["processing", "active", "failed", "unknown"]


class RemoteFile(BaseModel):
    """A file as reported by the remote analysis service."""

    name: str
    uri: str
    mime_type: str
    state: ReadinessState


class MediaHandle(BaseModel):
    """Opaque reference to an uploaded, ready-to-analyze video.

    Read-only once registered; safe to share between concurrent stages.
    """

    reference: str
    uri: str
    mime_type: str
    readiness_state: ReadinessState
    poll_count: int = 0
