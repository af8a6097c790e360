# src/reelextract/media/uploader.py — v1
"""Register local videos with the remote analysis service.

register() uploads and then waits cooperatively (asyncio.sleep, so task
cancellation interrupts it) until the remote file leaves the processing
state. The wait is bounded by ``max_polls``; the remote service's own
timeout still applies on each call. Once the upload has returned, every
exit from register() other than success deletes the remote file, including
a failed poll and cancellation.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from reelextract.core.errors import MediaPollTimeout, MediaRejected
from reelextract.llm.base_client import BaseMediaService
from reelextract.media.models import MediaHandle, RemoteFile

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 2.0
DEFAULT_MAX_POLLS = 300

_MIME_TYPES: dict[str, str] = {
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".webm": "video/webm",
    ".mkv": "video/x-matroska",
}


def guess_mime_type(path: str | Path) -> str:
    """Map a video file extension to its MIME type (mp4 when unknown)."""
    return _MIME_TYPES.get(Path(path).suffix.lower(), "video/mp4")


class MediaUploader:
    """Upload, poll to readiness, and release media on a BaseMediaService.

    Args:
        service: Provider media service.
        poll_interval_s: Fixed delay between readiness polls.
        max_polls: Upper bound on polls before MediaPollTimeout.
        display_name: Display name attached to uploads.
    """

    def __init__(
        self,
        service: BaseMediaService,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        max_polls: int = DEFAULT_MAX_POLLS,
        display_name: str = "restaurant-video",
    ) -> None:
        self._service = service
        self._poll_interval_s = poll_interval_s
        self._max_polls = max_polls
        self._display_name = display_name

    async def register(self, path: str | Path) -> MediaHandle:
        """Upload a local video and wait until the remote side is ready.

        Raises:
            MediaRejected: The remote service reported a terminal failure.
            MediaPollTimeout: Still processing after ``max_polls`` polls.
            RemoteCallFailure: Upload or poll call failed.
        """
        mime_type = guess_mime_type(path)
        uploaded = await self._service.upload(str(path), mime_type, self._display_name)
        logger.info("Uploaded %s as %s (state=%s)", path, uploaded.name, uploaded.state)

        try:
            remote, poll_count = await self._wait_until_ready(uploaded)
        except BaseException:
            await self._delete_quietly(uploaded.name)
            raise

        return MediaHandle(
            reference=remote.name,
            uri=remote.uri,
            mime_type=remote.mime_type or mime_type,
            readiness_state=remote.state,
            poll_count=poll_count,
        )

    async def _wait_until_ready(self, remote: RemoteFile) -> tuple[RemoteFile, int]:
        poll_count = 0
        while remote.state == "processing":
            if poll_count >= self._max_polls:
                raise MediaPollTimeout(remote.name, poll_count)
            poll_count += 1
            await asyncio.sleep(self._poll_interval_s)
            remote = await self._service.get(remote.name)
            logger.debug("Poll %d for %s: state=%s", poll_count, remote.name, remote.state)

        if remote.state == "failed":
            raise MediaRejected(remote.name, remote.state)
        return remote, poll_count

    async def release(self, handle: MediaHandle) -> bool:
        """Best-effort delete of an uploaded file.

        Returns:
            True if deleted; False if the delete failed (logged, never raised).
        """
        return await self._delete_quietly(handle.reference)

    async def _delete_quietly(self, reference: str) -> bool:
        try:
            await self._service.delete(reference)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to release media %s: %s", reference, exc)
            return False
        logger.info("Released media %s", reference)
        return True

    @asynccontextmanager
    async def registered(self, path: str | Path) -> AsyncIterator[MediaHandle]:
        """Scoped registration: the handle is released on every exit path."""
        handle = await self.register(path)
        try:
            yield handle
        finally:
            await self.release(handle)
