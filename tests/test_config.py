"""Tests for the configuration models and service."""

import json

import pytest
from pydantic import ValidationError

import market_pulse.config.service as config_service
from market_pulse.config import (
    AppConfig,
    LlmConfig,
    MarketConfig,
    load_config,
    reload_config,
    save_config,
)

ENV_VARS = (
    "GEMINI_API_KEY",
    "API_KEY",
    "LLM_PROVIDER",
    "LLM_MODEL",
    "REFRESH_INTERVAL_SECONDS",
    "REFRESH_OVERLAP_POLICY",
    "DEFAULT_TIMEFRAME",
    "PRIMARY_SYMBOL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestModels:
    def test_defaults(self):
        cfg = AppConfig()

        assert cfg.api.binance_base_url == "https://api.binance.com"
        assert cfg.api.binance_fapi_url == "https://fapi.binance.com"
        assert cfg.api.bybit_base_url == "https://api.bybit.com"
        assert cfg.llm.llm_provider == "gemini"
        assert cfg.llm.default_model == "gemini-2.5-flash"
        assert cfg.market.primary_symbol == "BTCUSDT"
        assert cfg.market.secondary_symbol == "PAXGUSDT"
        assert cfg.market.primary_fallback_price == 95000.0
        assert cfg.market.secondary_fallback_price == 2650.0
        assert cfg.market.binance_fallback_funding_rate == pytest.approx(0.0100)
        assert cfg.market.refresh_interval_seconds == 30.0
        assert cfg.market.overlap_policy == "latest"

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            MarketConfig(base_asset="BTCUSDT")

    def test_refresh_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            MarketConfig(refresh_interval_seconds=0)

    @pytest.mark.parametrize(
        "provider,expected",
        [("gemini", "g-key"), ("openai", "o-key"), ("ollama", None)],
    )
    def test_api_key_follows_provider(self, provider, expected):
        llm = LlmConfig(llm_provider=provider, gemini_api_key="g-key", openai_api_key="o-key")

        assert llm.api_key == expected

    def test_overlap_policy_must_be_known(self):
        with pytest.raises(ValidationError):
            MarketConfig(overlap_policy="queue")

    def test_default_timeframe_must_be_known(self):
        with pytest.raises(ValidationError):
            MarketConfig(default_timeframe="3d")

    def test_display_timezone_must_exist(self):
        with pytest.raises(ValidationError, match="Unknown timezone"):
            MarketConfig(display_timezone="Mars/Base")

        assert MarketConfig(display_timezone="Europe/Berlin").display_timezone == "Europe/Berlin"


class TestConfigService:
    def test_first_load_reads_env_and_saves(self, clean_env, temp_config_path):
        clean_env.setenv("GEMINI_API_KEY", "env-key")
        clean_env.setenv("REFRESH_INTERVAL_SECONDS", "15")
        clean_env.setenv("DEFAULT_TIMEFRAME", "4h")

        cfg = load_config()

        assert cfg.llm.gemini_api_key == "env-key"
        assert cfg.market.refresh_interval_seconds == 15.0
        assert cfg.market.default_timeframe == "4h"
        saved = json.loads(temp_config_path.read_text(encoding="utf-8"))
        assert saved["llm"]["gemini_api_key"] == "env-key"

    def test_api_key_env_is_gemini_fallback(self, clean_env):
        clean_env.setenv("API_KEY", "legacy-key")

        assert load_config().llm.gemini_api_key == "legacy-key"

    def test_missing_key_stays_unset(self, clean_env):
        assert load_config().llm.gemini_api_key is None

    def test_load_is_cached(self, clean_env):
        assert load_config() is load_config()

    def test_file_takes_priority_over_env(self, clean_env, temp_config_path):
        temp_config_path.write_text(
            json.dumps({"market": {"primary_symbol": "ETHUSDT"}}), encoding="utf-8"
        )
        clean_env.setenv("PRIMARY_SYMBOL", "SOLUSDT")

        assert load_config().market.primary_symbol == "ETHUSDT"

    def test_save_and_reload_round_trip(self, clean_env):
        cfg = load_config()
        cfg.market.refresh_interval_seconds = 45.0
        cfg.llm.default_model = "gemini-2.0-flash"
        save_config(cfg)

        config_service._APP_CONFIG = None
        reloaded = reload_config()

        assert reloaded.market.refresh_interval_seconds == 45.0
        assert reloaded.llm.default_model == "gemini-2.0-flash"

    def test_invalid_json_raises_value_error(self, temp_config_path):
        temp_config_path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid configuration file"):
            load_config()

    def test_schema_violation_raises_value_error(self, temp_config_path):
        temp_config_path.write_text(json.dumps({"market": {"unknown": 1}}), encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid configuration file"):
            load_config()

    def test_reload_without_file_raises(self, temp_config_path):
        assert not temp_config_path.exists()

        with pytest.raises(ValueError, match="not found"):
            reload_config()

    @pytest.mark.parametrize(
        "market",
        [
            {"overlap_policy": "bogus"},
            {"default_timeframe": "3d"},
            {"display_timezone": "Mars/Base"},
        ],
    )
    def test_bad_market_values_rejected_at_load(self, temp_config_path, market):
        temp_config_path.write_text(json.dumps({"market": market}), encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid configuration file"):
            load_config()
