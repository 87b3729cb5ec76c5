"""Market data snapshot types shared by the fetcher, the loop and the API."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class TimeFrame(str, Enum):
    """Chart window selected by the user."""

    H1 = "1h"
    H4 = "4h"
    D1 = "24h"
    D7 = "7d"


class ChartMode(str, Enum):
    """Which asset the chart and the commentary emphasize."""

    COMBINED = "combined"
    BTC = "btc"
    GOLD = "gold"


@dataclass(frozen=True)
class Ticker:
    """24h ticker statistics for one symbol."""

    symbol: str
    price: float
    change_percent: float
    change_absolute: float | None = None
    is_fallback: bool = False


@dataclass(frozen=True)
class CandleRangeSample:
    """High/low spread of the latest candle in one bucket."""

    label: str
    high: float
    low: float
    range_percent: float


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One merged chart point: primary close (A) and secondary close (B)."""

    display_label: str
    timestamp_ms: int
    value_a: float
    value_b: float


@dataclass(frozen=True)
class FundingRate:
    """Perpetual funding rate reported by one venue (decimal, 0.0001 = 0.01%)."""

    source_name: str
    rate: float
    is_fallback: bool = False


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of one sub-fetch: the real value or the fallback that replaced it."""

    value: T
    ok: bool
    error: str | None = None

    @classmethod
    def success(cls, value: T) -> "FetchResult[T]":
        return cls(value=value, ok=True)

    @classmethod
    def fallback(cls, value: T, error: str) -> "FetchResult[T]":
        return cls(value=value, ok=False, error=error)


@dataclass(frozen=True)
class MarketSnapshot:
    """Everything one refresh cycle produces. Replaced wholesale each cycle."""

    timeframe: TimeFrame
    primary: Ticker
    secondary: Ticker
    funding: list[FundingRate]
    primary_ranges: list[CandleRangeSample]
    secondary_ranges: list[CandleRangeSample]
    series: list[TimeSeriesPoint]
    fetched_at: datetime
    failed_fetches: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timeframe"] = self.timeframe.value
        data["fetched_at"] = self.fetched_at.isoformat()
        return data
