"""Tests for the async LLM providers and the provider factory."""

import asyncio
import json

import httpx
import pytest

from market_pulse.config.models import LlmConfig
from market_pulse.infra.llm_infra import (
    GeminiProvider,
    OllamaProvider,
    OpenAICompatibleProvider,
    create_provider,
    is_configured,
)


def run_with(handler, make_provider, *args):
    """Call ``complete`` on a provider wired to a mock transport."""

    async def _main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await make_provider(http).complete(*args)

    return asyncio.run(_main())


class TestGeminiProvider:
    def test_request_shape_and_reply(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "world"}]}}]},
            )

        text = run_with(
            handler,
            lambda http: GeminiProvider(api_key="secret", client=http),
            "be brief",
            "analyse BTC",
            0.7,
        )

        assert text == "Hello world"
        assert seen["url"] == (
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"
        )
        assert seen["key"] == "secret"
        assert seen["body"]["contents"] == [{"role": "user", "parts": [{"text": "analyse BTC"}]}]
        assert seen["body"]["systemInstruction"] == {"parts": [{"text": "be brief"}]}
        assert seen["body"]["generationConfig"] == {"temperature": 0.7}

    def test_empty_system_prompt_is_omitted(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"candidates": [{"content": {"parts": []}}]})

        text = run_with(handler, lambda http: GeminiProvider(api_key="k", client=http), "", "hi")

        assert text == ""
        assert "systemInstruction" not in seen["body"]

    def test_missing_candidates_raises(self):
        def handler(request):
            return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

        with pytest.raises(ValueError):
            run_with(handler, lambda http: GeminiProvider(api_key="k", client=http), "", "hi")

    def test_http_error_propagates(self):
        def handler(request):
            return httpx.Response(503)

        with pytest.raises(httpx.HTTPStatusError):
            run_with(handler, lambda http: GeminiProvider(api_key="k", client=http), "", "hi")

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            GeminiProvider(api_key="")


class TestOpenAICompatibleProvider:
    def test_chat_completion(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "42"}}]})

        text = run_with(
            handler,
            lambda http: OpenAICompatibleProvider(api_key="sk-test", base_url="http://llm.local/v1/", client=http),
            "sys",
            "user",
            0.2,
        )

        assert text == "42"
        assert seen["url"] == "http://llm.local/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "user"},
        ]
        assert seen["body"]["temperature"] == 0.2

    def test_null_content_is_empty_text(self):
        def handler(request):
            return httpx.Response(200, json={"choices": [{"message": {"content": None}}]})

        text = run_with(handler, lambda http: OpenAICompatibleProvider(api_key="k", client=http), "", "hi")

        assert text == ""

    def test_empty_choices_raises(self):
        def handler(request):
            return httpx.Response(200, json={"choices": []})

        with pytest.raises(ValueError):
            run_with(handler, lambda http: OpenAICompatibleProvider(api_key="k", client=http), "", "hi")


class TestOllamaProvider:
    def test_chat_without_streaming(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": {"role": "assistant", "content": "ok"}})

        text = run_with(handler, lambda http: OllamaProvider(model="llama3.2", client=http), "", "hi", 0.1)

        assert text == "ok"
        assert seen["url"] == "http://localhost:11434/api/chat"
        assert seen["body"]["stream"] is False
        assert seen["body"]["options"] == {"temperature": 0.1}
        assert seen["body"]["messages"] == [{"role": "user", "content": "hi"}]

    def test_connection_error_logged_with_traceback(self, caplog):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with caplog.at_level("ERROR"), pytest.raises(httpx.ConnectError):
            run_with(handler, lambda http: OllamaProvider(model="llama3.2", client=http), "", "hi")

        record = next(r for r in caplog.records if "Connection error" in r.getMessage())
        assert record.exc_info is not None


class TestFactory:
    def test_builds_provider_for_each_name(self):
        assert isinstance(create_provider(LlmConfig(gemini_api_key="k")), GeminiProvider)
        assert isinstance(
            create_provider(LlmConfig(llm_provider="openai", openai_api_key="k", default_model="gpt-4o-mini")),
            OpenAICompatibleProvider,
        )
        assert isinstance(create_provider(LlmConfig(llm_provider="ollama")), OllamaProvider)

    def test_provider_uses_configured_model(self):
        provider = create_provider(LlmConfig(gemini_api_key="k", default_model="gemini-2.0-flash"))

        assert provider.model == "gemini-2.0-flash"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            create_provider(LlmConfig(llm_provider="mistral"))

    def test_missing_key_rejected_at_construction(self):
        with pytest.raises(ValueError):
            create_provider(LlmConfig(gemini_api_key=None))

    @pytest.mark.parametrize(
        "config,expected",
        [
            (LlmConfig(gemini_api_key="k"), True),
            (LlmConfig(gemini_api_key=None), False),
            (LlmConfig(gemini_api_key=""), False),
            (LlmConfig(llm_provider="openai", openai_api_key="k"), True),
            (LlmConfig(llm_provider="ollama"), True),
        ],
    )
    def test_is_configured(self, config, expected):
        assert is_configured(config) is expected
