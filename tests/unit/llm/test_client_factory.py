# tests/unit/llm/test_client_factory.py — v1
"""Tests for llm/client_factory.py."""

from __future__ import annotations

import pytest

from reelextract.config.settings import Settings
from reelextract.llm.adapters.google_adapter import GoogleAdapter, GoogleFileService
from reelextract.llm.client_factory import (
    _PROVIDER_REGISTRY,
    UnsupportedProviderError,
    create_analysis_client,
    create_media_service,
    register_provider,
)


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, google_api_key="k", **kwargs)


class TestCreateAnalysisClient:
    def test_google(self):
        client = create_analysis_client(_settings(llm_precise_model="gemini-2.5-pro"))
        assert isinstance(client, GoogleAdapter)
        assert client.model_for("precise") == "gemini-2.5-pro"
        assert client.model_for("fast") == "gemini-3-flash-preview"
        assert client.provider_name == "google"

    def test_unknown_provider(self):
        with pytest.raises(UnsupportedProviderError, match="Available: google"):
            create_analysis_client(_settings(llm_provider="acme"))


class TestCreateMediaService:
    def test_google(self):
        assert isinstance(create_media_service(_settings()), GoogleFileService)


class TestRegisterProvider:
    def test_register(self):
        register_provider(
            "gemini-alt",
            "reelextract.llm.adapters.google_adapter.GoogleAdapter",
            "reelextract.llm.adapters.google_adapter.GoogleFileService",
        )
        try:
            client = create_analysis_client(_settings(llm_provider="gemini-alt"))
            assert isinstance(client, GoogleAdapter)
        finally:
            _PROVIDER_REGISTRY.pop("gemini-alt", None)
