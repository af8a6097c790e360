# src/reelextract/core/errors.py — v1
"""Extraction error taxonomy.

Only RemoteCallFailure (and its subclasses), MediaRejected and
VideoProbeFailure abort a pipeline attempt. ResponseParseFailure and
FrameMaterializationFailure are always absorbed by the stage that sees them.
"""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for every error raised by the extraction pipeline."""


class RemoteCallFailure(ExtractionError):
    """Network or service-level failure of the remote analysis service."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class MediaPollTimeout(RemoteCallFailure):
    """Uploaded media did not leave the processing state within the poll bound."""

    def __init__(self, reference: str, poll_count: int):
        self.reference = reference
        self.poll_count = poll_count
        super().__init__(
            "media_poll", f"{reference} still processing after {poll_count} polls"
        )


class MediaRejected(ExtractionError):
    """Remote service permanently failed to process the uploaded media."""

    def __init__(self, reference: str, state: str = "failed"):
        self.reference = reference
        self.state = state
        super().__init__(f"Media {reference} rejected by remote service (state={state})")


class ResponseParseFailure(ExtractionError):
    """Model output could not be parsed into the expected structure."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


class FrameMaterializationFailure(ExtractionError):
    """A single timestamp could not be turned into an image file."""

    def __init__(self, timestamp: float, message: str):
        self.timestamp = timestamp
        super().__init__(f"Frame extraction at {timestamp:.2f}s failed: {message}")


class VideoProbeFailure(ExtractionError):
    """Local probing of the video (duration, size) failed."""


class PipelineExhausted(ExtractionError):
    """Both the primary and the fallback pipeline failed."""

    def __init__(self, primary_error: BaseException, fallback_error: BaseException | None):
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        detail = f"primary: {primary_error}"
        if fallback_error is not None:
            detail += f"; fallback: {fallback_error}"
        super().__init__(f"Extraction failed ({detail})")
