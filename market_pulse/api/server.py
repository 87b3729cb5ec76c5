"""FastAPI application factory for the Market Pulse dashboard."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator
from zoneinfo import ZoneInfo

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from market_pulse import __version__
from market_pulse.api.rate_limiter import limiter
from market_pulse.api.routes import router
from market_pulse.commentary.service import CommentaryService
from market_pulse.config import AppConfig, load_config
from market_pulse.engine.refresh_loop import RefreshLoop
from market_pulse.market.binance import BinanceMarketClient

logger = logging.getLogger(__name__)


def build_loop(
    config: AppConfig,
    market_client: BinanceMarketClient,
    commentary: CommentaryService | None = None,
) -> RefreshLoop:
    """Wire a RefreshLoop from configuration."""
    return RefreshLoop(
        market_client,
        commentary or CommentaryService(config.llm),
        interval=config.market.refresh_interval_seconds,
        policy=config.market.overlap_policy,
        timeframe=config.market.default_timeframe,
    )


def create_app(
    config: AppConfig | None = None,
    loop: RefreshLoop | None = None,
) -> FastAPI:
    """Create the dashboard application.

    Args:
        config: Application config; loaded from disk/env when omitted
        loop: Pre-built refresh loop (tests inject one with fake sources)

    Returns:
        FastAPI app that starts the refresh loop on startup and stops it on shutdown
    """
    app_config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        market_client: BinanceMarketClient | None = None
        refresh_loop = loop
        if refresh_loop is None:
            market_client = BinanceMarketClient(
                app_config.api,
                app_config.market,
                tz=ZoneInfo(app_config.market.display_timezone),
            )
            refresh_loop = build_loop(app_config, market_client)

        app.state.loop = refresh_loop
        await refresh_loop.start()
        try:
            yield
        finally:
            await refresh_loop.stop()
            if market_client is not None:
                await market_client.aclose()

    app = FastAPI(
        title="Market Pulse API",
        version=__version__,
        description="Live BTC/gold dashboard with funding rates and AI commentary",
        lifespan=lifespan,
    )
    app.state.config = app_config
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.include_router(router)

    logger.debug("Created app for %s/%s", app_config.market.primary_symbol, app_config.market.secondary_symbol)
    return app
