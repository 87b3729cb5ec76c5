"""Build the configured LLM provider."""

from __future__ import annotations

from typing import Optional

import httpx

from market_pulse.config.models import LlmConfig
from .providers_gemini import GeminiProvider
from .providers_ollama import OllamaProvider
from .providers_openai import OpenAICompatibleProvider
from .types import AsyncLLMProvider

SUPPORTED_PROVIDERS = ("gemini", "openai", "ollama")


def is_configured(llm: LlmConfig) -> bool:
    """Whether the selected provider has what it needs to be called.

    Hosted providers need an API key; a local Ollama server does not.
    """
    if llm.llm_provider == "ollama":
        return True
    return bool(llm.api_key)


def create_provider(
    llm: LlmConfig, client: Optional[httpx.AsyncClient] = None
) -> AsyncLLMProvider:
    """Instantiate the provider named by ``llm.llm_provider``.

    Args:
        llm: LLM configuration section.
        client: Optional shared httpx client passed to the provider.

    Raises:
        ValueError: If the provider is unknown or its credential is missing.
    """
    provider = llm.llm_provider.lower()

    if provider == "gemini":
        return GeminiProvider(
            api_key=llm.gemini_api_key or "",
            base_url=llm.gemini_base_url,
            model=llm.default_model,
            timeout=llm.timeout_seconds,
            client=client,
        )
    if provider == "openai":
        return OpenAICompatibleProvider(
            api_key=llm.openai_api_key or "",
            base_url=llm.openai_api_base,
            model=llm.default_model,
            timeout=llm.timeout_seconds,
            client=client,
        )
    if provider == "ollama":
        return OllamaProvider(
            base_url=llm.ollama_base_url,
            model=llm.default_model,
            timeout=llm.timeout_seconds,
            client=client,
        )

    raise ValueError(
        f"Unknown LLM provider '{llm.llm_provider}'. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
    )
