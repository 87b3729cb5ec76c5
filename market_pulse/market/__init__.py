"""Market data: snapshot types, derived metrics and the Binance client."""

from market_pulse.market.binance import BinanceMarketClient
from market_pulse.market.metrics import (
    chart_interval,
    make_label_formatter,
    merge_series,
    range_percent,
    range_sample,
)
from market_pulse.market.models import (
    CandleRangeSample,
    ChartMode,
    FetchResult,
    FundingRate,
    MarketSnapshot,
    Ticker,
    TimeFrame,
    TimeSeriesPoint,
)

__all__ = [
    "BinanceMarketClient",
    "CandleRangeSample",
    "ChartMode",
    "FetchResult",
    "FundingRate",
    "MarketSnapshot",
    "Ticker",
    "TimeFrame",
    "TimeSeriesPoint",
    "chart_interval",
    "make_label_formatter",
    "merge_series",
    "range_percent",
    "range_sample",
]
