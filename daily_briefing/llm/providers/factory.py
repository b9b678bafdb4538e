"""Provider factory and registry for hot-swappable classifier backends."""

from __future__ import annotations

from dataclasses import replace
import logging

from ...config import ClassifyConfig, LoggingConfig, ProviderConfig, get_api_key
from .base import ClassifierProvider
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider


ProviderBuilder = type[ClassifierProvider]

_PROVIDER_REGISTRY: dict[str, ProviderBuilder] = {
    "gemini": GeminiProvider,
    "openai": OpenAICompatibleProvider,
    "openai_compatible": OpenAICompatibleProvider,
    "openai-compatible": OpenAICompatibleProvider,
    "zhipu": OpenAICompatibleProvider,
}

_DEFAULT_BASE_URLS: dict[str, str] = {
    "gemini": "https://generativelanguage.googleapis.com",
    "openai": "https://api.openai.com/v1",
    "zhipu": "https://open.bigmodel.cn/api/paas/v4",
}


def available_providers() -> list[str]:
    """Return the set of registered provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


def create_provider(
    provider_cfg: ProviderConfig,
    classify_cfg: ClassifyConfig,
    log_cfg: LoggingConfig,
    llm_logger: logging.Logger | None,
) -> ClassifierProvider:
    """Build a provider instance from runtime config.

    Raises:
        ValueError: For an unknown provider name, a missing base URL, or a
            missing API key
    """
    name = provider_cfg.name.lower().strip()
    builder = _PROVIDER_REGISTRY.get(name)
    if builder is None:
        supported = ", ".join(available_providers())
        raise ValueError(f"Unsupported provider: {provider_cfg.name}. Supported: {supported}")

    base_url = provider_cfg.base_url or _DEFAULT_BASE_URLS.get(name)
    if not base_url:
        raise ValueError(f"Provider '{provider_cfg.name}' requires provider.base_url")

    api_key = get_api_key(provider_cfg)
    return builder(replace(provider_cfg, base_url=base_url), classify_cfg, api_key, log_cfg, llm_logger)
