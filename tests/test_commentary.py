"""Tests for commentary prompts and the commentary service."""

import asyncio

import httpx
import pytest

from market_pulse.commentary import (
    NO_RESPONSE_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    RETRY_LATER_MESSAGE,
    CommentaryInputs,
    CommentaryService,
    build_prompt,
    format_ranges,
    role_title,
)
from market_pulse.config.models import LlmConfig
from market_pulse.market.models import CandleRangeSample, ChartMode


class RecordingProvider:
    """Fake provider that records prompts and returns a canned reply."""

    model = "fake-model"

    def __init__(self, reply="🟢 **BUY (LONG)** above 96k"):
        self.reply = reply
        self.calls = []

    async def complete(self, system_prompt, user_prompt, temperature=0.0):
        self.calls.append((system_prompt, user_prompt, temperature))
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture
def inputs():
    return CommentaryInputs(
        btc_price=97000.0,
        btc_change=1.5,
        gold_price=2700.0,
        gold_change=-0.25,
        funding_rate_pct=0.01,
        btc_ranges=[
            CandleRangeSample(label="1h", high=97500.0, low=96500.0, range_percent=1.036),
            CandleRangeSample(label="24h", high=98000.0, low=95000.0, range_percent=3.158),
        ],
        gold_ranges=[CandleRangeSample(label="24h", high=2710.0, low=2690.0, range_percent=0.7435)],
    )


class TestPrompts:
    def test_format_ranges(self):
        text = format_ranges([CandleRangeSample(label="24h", high=101.0, low=99.77, range_percent=1.2328)])

        assert text == "- 24h: Range 1.23% (High: $101, Low: $99.77)"

    def test_btc_prompt_embeds_price_funding_and_ranges(self, inputs):
        system, user = build_prompt(inputs, ChartMode.BTC)

        assert "Bitcoin" in system
        assert "$97000" in user
        assert "Funding Rate 0.01%" in user
        assert "- 1h: Range 1.04%" in user
        assert "- 24h: Range 3.16%" in user
        assert "BUY (LONG)" in user

    def test_gold_prompt_uses_gold_figures(self, inputs):
        system, user = build_prompt(inputs, "gold")

        assert "gold" in system.lower()
        assert "$2700" in user
        assert "- 24h: Range 0.74%" in user
        assert "Funding Rate" not in user

    def test_combined_prompt_compares_daily_ranges(self, inputs):
        _, user = build_prompt(inputs, ChartMode.COMBINED)

        assert "BTC volatility**: 24H range is 3.16%" in user
        assert "Gold volatility**: 24H range is 0.74%" in user
        assert "70% BTC / 30% Gold" in user

    def test_combined_prompt_without_ranges(self):
        data = CommentaryInputs(btc_price=0, btc_change=0, gold_price=0, gold_change=0, funding_rate_pct=0)

        _, user = build_prompt(data, ChartMode.COMBINED)

        assert "24H range is n/a" in user

    def test_unknown_mode_rejected(self, inputs):
        with pytest.raises(ValueError):
            build_prompt(inputs, "silver")

    def test_role_titles(self):
        assert role_title(ChartMode.BTC) == "Crypto Trader Pro"
        assert role_title("gold") == "Gold Commodities Expert"
        assert role_title(ChartMode.COMBINED) == "Macro Market Strategist"

    def test_inputs_from_snapshot_scale_first_funding_rate(self, snapshot):
        data = CommentaryInputs.from_snapshot(snapshot)

        assert data.btc_price == 97000.0
        assert data.gold_change == -0.25
        assert data.funding_rate_pct == pytest.approx(0.01)
        assert [s.label for s in data.btc_ranges] == ["1h", "24h"]


class TestCommentaryService:
    def test_missing_key_short_circuits_without_network(self, inputs):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        async def _main():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                service = CommentaryService(LlmConfig(gemini_api_key=None), client=http)
                return service.configured, await service.generate(inputs, ChartMode.BTC)

        configured, text = asyncio.run(_main())

        assert configured is False
        assert text == NOT_CONFIGURED_MESSAGE
        assert calls == []

    def test_returns_provider_text(self, inputs):
        provider = RecordingProvider()
        service = CommentaryService(LlmConfig(temperature=0.3), provider=provider)

        text = asyncio.run(service.generate(inputs, ChartMode.BTC))

        assert text == "🟢 **BUY (LONG)** above 96k"
        system, user, temperature = provider.calls[0]
        assert "Crypto Trader Pro" in system
        assert "$97000" in user
        assert temperature == 0.3

    def test_provider_error_maps_to_retry_message(self, inputs):
        service = CommentaryService(LlmConfig(), provider=RecordingProvider(reply=RuntimeError("quota")))

        assert asyncio.run(service.generate(inputs, ChartMode.GOLD)) == RETRY_LATER_MESSAGE

    def test_http_error_maps_to_retry_message(self, inputs):
        def handler(request):
            return httpx.Response(429, json={"error": {"message": "RESOURCE_EXHAUSTED"}})

        async def _main():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                service = CommentaryService(LlmConfig(gemini_api_key="k"), client=http)
                return await service.generate(inputs, ChartMode.COMBINED)

        assert asyncio.run(_main()) == RETRY_LATER_MESSAGE

    @pytest.mark.parametrize("reply", ["", "   \n"])
    def test_empty_reply_maps_to_no_response(self, inputs, reply):
        service = CommentaryService(LlmConfig(), provider=RecordingProvider(reply=reply))

        assert asyncio.run(service.generate(inputs, ChartMode.BTC)) == NO_RESPONSE_MESSAGE

    def test_ollama_needs_no_key(self):
        assert CommentaryService(LlmConfig(llm_provider="ollama", default_model="llama3.2")).configured

    def test_openai_key_is_used_for_openai_provider(self):
        assert not CommentaryService(LlmConfig(llm_provider="openai", gemini_api_key="g")).configured
        assert CommentaryService(LlmConfig(llm_provider="openai", openai_api_key="sk-test")).configured
