"""Configuration service for loading and saving AppConfig."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from market_pulse.config.models import (
    ApiConfig,
    AppConfig,
    LlmConfig,
    MarketConfig,
    ServerConfig,
)

# Global cache for config (loaded once per process)
_APP_CONFIG: AppConfig | None = None

logger = logging.getLogger(__name__)


def get_config_path() -> Path:
    """Get path to the configuration file.

    Returns:
        Path to ~/.market_pulse/config.json, or MARKET_PULSE_CONFIG when set

    Creates the directory if it doesn't exist.
    """
    override = os.getenv("MARKET_PULSE_CONFIG")
    if override:
        path = Path(override)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    config_dir = Path.home() / ".market_pulse"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir / "config.json"


def _load_from_env() -> AppConfig:
    """Load configuration from environment variables.

    This is used when config.json doesn't exist yet.
    Environment variables override the default values.

    Returns:
        AppConfig populated from environment variables
    """
    api_config = ApiConfig(
        binance_base_url=os.getenv("BINANCE_BASE_URL", "https://api.binance.com"),
        binance_fapi_url=os.getenv("BINANCE_FAPI_URL", "https://fapi.binance.com"),
        bybit_base_url=os.getenv("BYBIT_BASE_URL", "https://api.bybit.com"),
        request_timeout_seconds=float(os.getenv("MARKET_REQUEST_TIMEOUT", "10")),
    )

    # API_KEY is accepted as a legacy name for the Gemini key
    llm_config = LlmConfig(
        llm_provider=os.getenv("LLM_PROVIDER", "gemini"),
        default_model=os.getenv("LLM_MODEL", "gemini-2.5-flash"),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        gemini_base_url=os.getenv(
            "GEMINI_BASE_URL",
            "https://generativelanguage.googleapis.com/v1beta"
        ),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_api_base=os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1"),
        ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
        temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
        timeout_seconds=int(os.getenv("LLM_TIMEOUT_SECONDS", "60")),
    )

    market_config = MarketConfig(
        primary_symbol=os.getenv("PRIMARY_SYMBOL", "BTCUSDT"),
        secondary_symbol=os.getenv("SECONDARY_SYMBOL", "PAXGUSDT"),
        funding_symbol=os.getenv("FUNDING_SYMBOL", "BTCUSDT"),
        refresh_interval_seconds=float(os.getenv("REFRESH_INTERVAL_SECONDS", "30")),
        overlap_policy=os.getenv("REFRESH_OVERLAP_POLICY", "latest"),
        default_timeframe=os.getenv("DEFAULT_TIMEFRAME", "1h"),
        display_timezone=os.getenv("DISPLAY_TIMEZONE", "UTC"),
    )

    server_config = ServerConfig(
        host=os.getenv("MARKET_PULSE_HOST", "127.0.0.1"),
        port=int(os.getenv("MARKET_PULSE_PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )

    return AppConfig(
        api=api_config,
        llm=llm_config,
        market=market_config,
        server=server_config,
    )


def load_config() -> AppConfig:
    """Load application configuration.

    Loading priority:
    1. If already cached in memory, return cached instance
    2. If config.json exists, load from file
    3. Otherwise, create from environment variables and save to file

    Returns:
        AppConfig instance

    Raises:
        ValueError: If config file is invalid JSON or doesn't match the schema
    """
    global _APP_CONFIG

    if _APP_CONFIG is not None:
        return _APP_CONFIG

    config_path = get_config_path()

    if config_path.exists():
        try:
            logger.info("Loading configuration from %s", config_path)
            with open(config_path, encoding="utf-8") as f:
                data: Dict[str, Any] = json.load(f)
            _APP_CONFIG = AppConfig(**data)
            logger.info("Configuration loaded successfully")
            return _APP_CONFIG
        except (json.JSONDecodeError, ValueError) as exc:
            logger.error("Failed to parse config file %s: %s", config_path, exc)
            raise ValueError(f"Invalid configuration file: {exc}") from exc

    logger.info("No config file found, creating from environment variables")
    _APP_CONFIG = _load_from_env()

    save_config(_APP_CONFIG)

    return _APP_CONFIG


def save_config(app_config: AppConfig) -> None:
    """Save configuration to file.

    Args:
        app_config: AppConfig instance to save

    Raises:
        IOError: If file cannot be written
    """
    global _APP_CONFIG

    config_path = get_config_path()

    data = app_config.model_dump(mode="json")

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    _APP_CONFIG = app_config

    logger.info("Configuration saved to %s", config_path)


def reload_config() -> AppConfig:
    """Reload configuration from file, clearing the cache.

    Returns:
        AppConfig instance loaded from file

    Raises:
        ValueError: If config file doesn't exist or is invalid
    """
    global _APP_CONFIG

    config_path = get_config_path()

    if not config_path.exists():
        raise ValueError(f"Configuration file not found: {config_path}")

    _APP_CONFIG = None

    return load_config()
