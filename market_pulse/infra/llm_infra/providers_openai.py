"""OpenAI-compatible HTTP API provider implementation."""

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider:
    """Provider for OpenAI-compatible HTTP APIs (OpenAI, Azure, vLLM, etc.)."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize OpenAI-compatible provider.

        Args:
            api_key: API key for authentication.
            base_url: Base URL for the API endpoint.
            model: Model identifier to use.
            timeout: Request timeout in seconds.
            client: Optional shared httpx client.
        """
        if not api_key:
            raise ValueError("api_key is required for OpenAICompatibleProvider")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._client = client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.0,
    ) -> str:
        """Generate a single completion.

        Args:
            system_prompt: System/instruction prompt (skipped when empty).
            user_prompt: User message/query.
            temperature: Sampling temperature.

        Returns:
            Generated text completion.

        Raises:
            ValueError: If response format is invalid.
            httpx.HTTPError: If request fails.
        """
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        response = await self._make_request(messages, temperature)

        if not isinstance(response, dict):
            raise ValueError(f"Expected dict response from OpenAI, got {type(response)}")

        choices = response.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ValueError(f"Expected non-empty list for 'choices', got {type(choices)}")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise ValueError("Missing 'message' key in choice")

        content = message.get("content")
        if content is None:
            return ""
        if not isinstance(content, str):
            raise ValueError(f"Expected string content, got {type(content)}")

        return content

    async def _make_request(
        self,
        messages: List[Dict[str, str]],
        temperature: float,
    ) -> Dict[str, Any]:
        """Make HTTP request to the API.

        Raises:
            httpx.TimeoutException: If request exceeds timeout.
            httpx.RequestError: If connection fails.
            httpx.HTTPStatusError: If HTTP status is 4xx or 5xx.
            ValueError: If response is not valid JSON.
        """
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }

        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException:
            logger.error("Timeout calling OpenAI API at %s", self.base_url)
            raise
        except httpx.HTTPStatusError as exc:
            logger.error("HTTP %s from OpenAI API at %s", exc.response.status_code, self.base_url)
            raise
        except httpx.RequestError:
            logger.error("Connection error calling OpenAI API at %s", self.base_url, exc_info=True)
            raise
        except ValueError:
            logger.error("Invalid JSON response from OpenAI API at %s", self.base_url)
            raise
