"""Pytest configuration shared across the suite."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from market_pulse.market.models import (
    CandleRangeSample,
    FundingRate,
    MarketSnapshot,
    Ticker,
    TimeFrame,
    TimeSeriesPoint,
)


@pytest.fixture(autouse=True)
def temp_config_path(monkeypatch, tmp_path):
    """Point the config service at a temporary file and clear its cache."""
    import market_pulse.config.service as config_service

    config_path = tmp_path / "config.json"
    monkeypatch.setattr(
        "market_pulse.config.service.get_config_path",
        lambda: config_path,
    )
    config_service._APP_CONFIG = None

    yield config_path

    config_service._APP_CONFIG = None


@pytest.fixture(scope="session", autouse=True)
def _disable_rate_limits():
    """Rate limits are covered separately; keep them out of functional tests."""
    from market_pulse.api.rate_limiter import limiter

    limiter.enabled = False
    yield
    limiter.enabled = True


def build_snapshot(timeframe: TimeFrame = TimeFrame.H1, btc_price: float = 97000.0) -> MarketSnapshot:
    return MarketSnapshot(
        timeframe=timeframe,
        primary=Ticker(symbol="BTCUSDT", price=btc_price, change_percent=1.5),
        secondary=Ticker(symbol="PAXGUSDT", price=2700.0, change_percent=-0.25),
        funding=[
            FundingRate(source_name="Binance", rate=0.0001),
            FundingRate(source_name="Bybit", rate=0.00012),
        ],
        primary_ranges=[
            CandleRangeSample(label="1h", high=97500.0, low=96500.0, range_percent=1.04),
            CandleRangeSample(label="24h", high=98000.0, low=95000.0, range_percent=3.16),
        ],
        secondary_ranges=[
            CandleRangeSample(label="24h", high=2710.0, low=2690.0, range_percent=0.74),
        ],
        series=[
            TimeSeriesPoint(display_label="22:13", timestamp_ms=1_700_000_000_000, value_a=btc_price, value_b=2700.0),
        ],
        fetched_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def snapshot() -> MarketSnapshot:
    return build_snapshot()


@pytest.fixture
def make_snapshot():
    return build_snapshot
