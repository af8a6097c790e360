# src/reelextract/llm/client_factory.py — v1
"""Factory: instantiate analysis client and media service from provider name.

Called by the facade to build the orchestrator's collaborators from
configuration (see llm/config.py for per-stage model routing).
"""

from __future__ import annotations

import importlib
import logging

from reelextract.config.settings import Settings
from reelextract.llm.base_client import BaseAnalysisClient, BaseMediaService
from reelextract.llm.config import tier_model

logger = logging.getLogger(__name__)

# Registry of provider name -> (analysis client class path, media service class path).
_PROVIDER_REGISTRY: dict[str, tuple[str, str]] = {
    "google": (
        "reelextract.llm.adapters.google_adapter.GoogleAdapter",
        "reelextract.llm.adapters.google_adapter.GoogleFileService",
    ),
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def _lookup(provider: str) -> tuple[str, str]:
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported analysis provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )
    return _PROVIDER_REGISTRY[provider]


def _api_key(provider: str, settings: Settings) -> str:
    if provider == "google":
        return settings.google_api_key
    return ""


def create_analysis_client(settings: Settings, **kwargs: object) -> BaseAnalysisClient:
    """Instantiate the analysis client for the configured provider.

    Raises:
        UnsupportedProviderError: If the provider is not registered.
    """
    provider = settings.llm_provider
    client_path, _ = _lookup(provider)
    adapter_cls = _import_class(client_path)

    init_kwargs = dict(kwargs)
    init_kwargs.setdefault("precise_model", tier_model("precise", settings).model)
    init_kwargs.setdefault("fast_model", tier_model("fast", settings).model)
    init_kwargs.setdefault("api_key", _api_key(provider, settings))
    init_kwargs.setdefault("max_output_tokens", settings.llm_max_output_tokens)

    logger.debug(
        "Creating analysis client: provider=%s, precise=%s, fast=%s",
        provider, init_kwargs["precise_model"], init_kwargs["fast_model"],
    )
    return adapter_cls(**init_kwargs)


def create_media_service(settings: Settings, **kwargs: object) -> BaseMediaService:
    """Instantiate the media service for the configured provider.

    Raises:
        UnsupportedProviderError: If the provider is not registered.
    """
    provider = settings.llm_provider
    _, media_path = _lookup(provider)
    service_cls = _import_class(media_path)

    init_kwargs = dict(kwargs)
    init_kwargs.setdefault("api_key", _api_key(provider, settings))
    return service_cls(**init_kwargs)


def register_provider(name: str, client_path: str, media_path: str) -> None:
    """Register a custom provider.

    Args:
        name: Provider identifier.
        client_path: Class path implementing BaseAnalysisClient.
        media_path: Class path implementing BaseMediaService.
    """
    _PROVIDER_REGISTRY[name] = (client_path, media_path)
    logger.info("Registered analysis provider: %s -> %s", name, client_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
