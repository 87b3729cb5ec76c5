"""Configuration management package for Market Pulse.

Usage:
    from market_pulse.config import load_config, save_config

    cfg = load_config()
    print(cfg.market.primary_symbol)
    print(cfg.llm.default_model)

    cfg.market.refresh_interval_seconds = 15
    save_config(cfg)
"""

from market_pulse.config.models import (
    ApiConfig,
    AppConfig,
    LlmConfig,
    MarketConfig,
    ServerConfig,
)
from market_pulse.config.service import (
    get_config_path,
    load_config,
    reload_config,
    save_config,
)

__all__ = [
    # Models
    "ApiConfig",
    "LlmConfig",
    "MarketConfig",
    "ServerConfig",
    "AppConfig",
    # Service functions
    "get_config_path",
    "load_config",
    "save_config",
    "reload_config",
]
