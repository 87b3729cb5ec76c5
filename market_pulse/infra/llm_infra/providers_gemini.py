"""Google Gemini REST provider implementation."""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class GeminiProvider:
    """Provider for the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-2.5-flash",
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Gemini provider.

        Args:
            api_key: Gemini API key.
            base_url: Base URL of the Generative Language API.
            model: Model identifier to use.
            timeout: Request timeout in seconds.
            client: Optional shared httpx client (tests inject a mock transport).
        """
        if not api_key:
            raise ValueError("api_key is required for GeminiProvider")
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
            Generated text completion (may be empty when the model returned no text).

        Raises:
            ValueError: If response format is invalid.
            httpx.HTTPError: If request fails.
        """
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": {"temperature": temperature},
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        response = await self._make_request(payload)

        if not isinstance(response, dict):
            raise ValueError(f"Expected dict response from Gemini, got {type(response)}")

        candidates = response.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise ValueError("Missing 'candidates' in Gemini response")

        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        if not isinstance(content, dict):
            raise ValueError("Missing 'content' in Gemini candidate")

        parts = content.get("parts") or []
        if not isinstance(parts, list):
            raise ValueError(f"Expected list for 'parts', got {type(parts)}")

        return "".join(
            part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)
        )

    async def _make_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Make HTTP request to the API.

        Raises:
            httpx.TimeoutException: If request exceeds timeout.
            httpx.RequestError: If connection fails.
            httpx.HTTPStatusError: If HTTP status is 4xx or 5xx.
            ValueError: If response is not valid JSON.
        """
        url = f"{self.base_url}/models/{self.model}:generateContent"
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
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
            logger.error("Timeout calling Gemini API for model %s", self.model)
            raise
        except httpx.HTTPStatusError as exc:
            logger.error("HTTP %s from Gemini API for model %s", exc.response.status_code, self.model)
            raise
        except httpx.RequestError:
            logger.error("Connection error calling Gemini API at %s", self.base_url, exc_info=True)
            raise
        except ValueError:
            logger.error("Invalid JSON response from Gemini API at %s", self.base_url)
            raise
