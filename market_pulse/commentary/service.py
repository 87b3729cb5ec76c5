"""On-demand AI commentary built from the current dashboard numbers."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from market_pulse.commentary.prompts import CommentaryInputs, build_prompt
from market_pulse.config.models import LlmConfig
from market_pulse.infra.llm_infra import AsyncLLMProvider, create_provider, is_configured
from market_pulse.market.models import ChartMode

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "⚠️ AI analyst is not configured: no API key for the selected provider."
RETRY_LATER_MESSAGE = "The AI analyst is busy or unreachable. Please try again later."
NO_RESPONSE_MESSAGE = "No response from the AI analyst."


class CommentaryService:
    """Single request/response commentary generator.

    ``generate`` never raises: a missing credential short-circuits before any
    network call, and every provider failure maps to a fixed message.
    """

    def __init__(
        self,
        llm: LlmConfig,
        provider: Optional[AsyncLLMProvider] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the service.

        Args:
            llm: LLM configuration section.
            provider: Explicit provider; built from ``llm`` on demand when omitted.
            client: Optional shared httpx client for the built provider.
        """
        self.llm = llm
        self._provider = provider
        self._client = client

    @property
    def configured(self) -> bool:
        return self._provider is not None or is_configured(self.llm)

    async def generate(self, inputs: CommentaryInputs, mode: ChartMode | str) -> str:
        """Produce commentary text for ``inputs`` in the persona of ``mode``."""
        if not self.configured:
            logger.info("Commentary requested but %s has no credential", self.llm.llm_provider)
            return NOT_CONFIGURED_MESSAGE

        try:
            system_prompt, user_prompt = build_prompt(inputs, mode)
            provider = self._provider or create_provider(self.llm, self._client)
            logger.info("Requesting %s commentary from %s", ChartMode(mode).value, provider.model)
            text = await provider.complete(system_prompt, user_prompt, self.llm.temperature)
        except Exception as exc:
            logger.error("AI commentary failed: %s: %s", type(exc).__name__, exc, exc_info=True)
            return RETRY_LATER_MESSAGE

        if not text or not text.strip():
            return NO_RESPONSE_MESSAGE
        return text
