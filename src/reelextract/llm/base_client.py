# src/reelextract/llm/base_client.py — v1
"""Abstract analysis client and media service interfaces.

No retry or backoff lives at this layer; every retry/fallback decision is
made by the orchestrator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from reelextract.llm.models import ImageInput, LLMResponse, Tier
from reelextract.media.models import MediaHandle, RemoteFile


class BaseAnalysisClient(ABC):
    """Issue multimodal requests to one of two model tiers.

    Implementations raise RemoteCallFailure for any network or service
    error; the returned text is never interpreted here.
    """

    @abstractmethod
    async def analyze(
        self,
        handle: MediaHandle,
        instruction: str,
        tier: Tier,
        model: str | None = None,
    ) -> LLMResponse:
        """Analyze uploaded media with an instruction; return raw text."""

    @abstractmethod
    async def analyze_images(
        self,
        images: list[ImageInput],
        instruction: str,
        tier: Tier,
        model: str | None = None,
    ) -> LLMResponse:
        """Analyze inline images with an instruction; return raw text."""

    @abstractmethod
    def model_for(self, tier: Tier) -> str:
        """Model name serving the given tier."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (google, ...)."""


class BaseMediaService(ABC):
    """Upload, poll and delete media on the remote analysis service."""

    @abstractmethod
    async def upload(self, path: str, mime_type: str, display_name: str) -> RemoteFile:
        """Upload a local file; the returned state is usually 'processing'."""

    @abstractmethod
    async def get(self, name: str) -> RemoteFile:
        """Fetch the current state of an uploaded file."""

    @abstractmethod
    async def delete(self, name: str) -> None:
        """Delete an uploaded file."""
