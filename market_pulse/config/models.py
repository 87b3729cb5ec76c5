"""Configuration models for Market Pulse using Pydantic."""
from __future__ import annotations

from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApiConfig(BaseModel):
    """Market data endpoints configuration."""

    model_config = ConfigDict(extra="forbid")

    binance_base_url: str = "https://api.binance.com"
    binance_fapi_url: str = "https://fapi.binance.com"
    bybit_base_url: str = "https://api.bybit.com"

    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Timeout for a single market data request"
    )


class LlmConfig(BaseModel):
    """Generative text provider configuration."""

    model_config = ConfigDict(extra="forbid")

    llm_provider: str = Field(
        default="gemini",
        description="LLM provider: 'gemini', 'openai' or 'ollama'"
    )
    default_model: str = Field(
        default="gemini-2.5-flash",
        description="Model identifier for the chosen provider"
    )

    gemini_api_key: str | None = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    openai_api_key: str | None = None
    openai_api_base: str = "https://api.openai.com/v1"

    ollama_base_url: str = "http://localhost:11434"

    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for LLM"
    )
    timeout_seconds: int = Field(
        default=60,
        ge=1,
        description="Request timeout in seconds"
    )

    @property
    def api_key(self) -> str | None:
        """Credential for the selected provider, if any."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        if self.llm_provider == "ollama":
            return None
        return self.gemini_api_key


class MarketConfig(BaseModel):
    """Symbols, fallbacks and polling cadence."""

    model_config = ConfigDict(extra="forbid")

    primary_symbol: str = Field(
        default="BTCUSDT",
        description="Crypto asset shown as series A"
    )
    secondary_symbol: str = Field(
        default="PAXGUSDT",
        description="Gold proxy shown as series B"
    )
    funding_symbol: str = Field(
        default="BTCUSDT",
        description="Perpetual contract used for funding rates"
    )

    primary_fallback_price: float = Field(default=95000.0, ge=0.0)
    secondary_fallback_price: float = Field(default=2650.0, ge=0.0)
    binance_fallback_funding_rate: float = 0.0100

    refresh_interval_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Period of the automatic refresh timer"
    )
    overlap_policy: Literal["latest", "allow", "drop"] = Field(
        default="latest",
        description="Overlapping refresh policy: 'latest', 'allow' or 'drop'"
    )
    default_timeframe: Literal["1h", "4h", "24h", "7d"] = Field(
        default="1h",
        description="Chart timeframe selected on startup"
    )
    display_timezone: str = Field(
        default="UTC",
        description="IANA timezone used for chart labels"
    )

    @field_validator("display_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone '{value}'") from exc
        return value


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    model_config = ConfigDict(extra="forbid")

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = "INFO"


class AppConfig(BaseModel):
    """Root application configuration containing all sub-configs."""

    model_config = ConfigDict(extra="forbid")

    api: ApiConfig = Field(default_factory=ApiConfig)
    llm: LlmConfig = Field(default_factory=LlmConfig)
    market: MarketConfig = Field(default_factory=MarketConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
