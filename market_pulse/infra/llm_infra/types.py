"""Type definitions and protocols for LLM providers."""

from typing import Protocol


class AsyncLLMProvider(Protocol):
    """Protocol for asynchronous LLM providers."""

    model: str

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.0,
    ) -> str:
        """Generate a single completion asynchronously.

        Args:
            system_prompt: System/instruction prompt (may be empty).
            user_prompt: User message/query.
            temperature: Sampling temperature (0.0 = deterministic).

        Returns:
            Generated text completion.
        """
        ...
