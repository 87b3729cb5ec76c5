"""Ollama local model provider implementation."""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class OllamaProvider:
    """Provider for local Ollama models over the chat API."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3.2",
        timeout: float = 600.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Ollama provider.

        Args:
            base_url: Base URL for Ollama API.
            model: Model name to use.
            timeout: Request timeout in seconds.
            client: Optional shared httpx client.
        """
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

        Raises:
            ValueError: If response format is invalid.
            httpx.HTTPError: If request fails.
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "options": {"temperature": temperature},
            "stream": False,
        }
        response = await self._make_request(payload)

        if not isinstance(response, dict):
            raise ValueError(f"Expected dict response from Ollama, got {type(response)}")

        message = response.get("message")
        if not isinstance(message, dict) or not isinstance(message.get("content"), str):
            raise ValueError("Missing 'message.content' in Ollama response")

        return message["content"]

    async def _make_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/api/chat"
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=payload)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException:
            logger.error("Timeout calling Ollama API at %s", self.base_url)
            raise
        except httpx.HTTPStatusError as exc:
            logger.error("HTTP %s from Ollama API at %s", exc.response.status_code, self.base_url)
            raise
        except httpx.RequestError:
            logger.error(
                "Connection error calling Ollama API at %s", self.base_url,
                exc_info=True
            )
            raise
        except ValueError:
            logger.error("Invalid JSON response from Ollama API at %s", self.base_url)
            raise
