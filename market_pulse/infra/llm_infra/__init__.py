"""LLM Infrastructure - async provider abstraction for hosted and local models."""

from .types import AsyncLLMProvider
from .providers_gemini import GeminiProvider
from .providers_openai import OpenAICompatibleProvider
from .providers_ollama import OllamaProvider
from .factory import SUPPORTED_PROVIDERS, create_provider, is_configured

__all__ = [
    "AsyncLLMProvider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "OllamaProvider",
    "SUPPORTED_PROVIDERS",
    "create_provider",
    "is_configured",
]
