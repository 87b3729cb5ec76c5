"""Derived display metrics: range-percent, bucket samples and series merge."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Iterable, Sequence

from market_pulse.market.models import CandleRangeSample, TimeFrame, TimeSeriesPoint

# Kline column indexes in the Binance REST payload
OPEN_TIME = 0
HIGH = 2
LOW = 3
CLOSE = 4

# (interval, candle count) per chart timeframe
CHART_INTERVALS: dict[TimeFrame, tuple[str, int]] = {
    TimeFrame.H1: ("1m", 60),
    TimeFrame.H4: ("5m", 48),
    TimeFrame.D1: ("15m", 96),
    TimeFrame.D7: ("2h", 84),
}
DEFAULT_CHART_INTERVAL: tuple[str, int] = ("1h", 168)

# (label, interval, candle count) for the high/low table
RANGE_BUCKETS: tuple[tuple[str, str, int], ...] = (
    ("1h", "1h", 2),
    ("4h", "4h", 2),
    ("24h", "1d", 1),
    ("7d", "1w", 1),
)


def chart_interval(timeframe: TimeFrame | str | None) -> tuple[str, int]:
    """Map a timeframe selector to the kline (interval, limit) pair.

    Unknown selectors fall back to hourly candles over a week.
    """
    try:
        key = TimeFrame(timeframe)
    except ValueError:
        return DEFAULT_CHART_INTERVAL
    return CHART_INTERVALS.get(key, DEFAULT_CHART_INTERVAL)


def range_percent(high: float, low: float) -> float:
    """High-low spread as a percentage of the low; zero when low is not positive."""
    if low > 0:
        return (high - low) / low * 100
    return 0.0


def range_sample(label: str, klines: Sequence[Sequence[Any]] | None) -> CandleRangeSample:
    """Build a bucket sample from the most recent kline, zeros when there is none."""
    if not klines:
        return CandleRangeSample(label=label, high=0.0, low=0.0, range_percent=0.0)

    candle = klines[-1]
    high = float(candle[HIGH])
    low = float(candle[LOW])
    return CandleRangeSample(
        label=label,
        high=high,
        low=low,
        range_percent=range_percent(high, low),
    )


def make_label_formatter(
    timeframe: TimeFrame | str | None, tz: tzinfo = timezone.utc
) -> Callable[[int], str]:
    """Return the chart label function for a timeframe.

    The weekly view needs the day, the shorter ones only the clock time.
    """
    if timeframe == TimeFrame.D7 or timeframe == TimeFrame.D7.value:
        fmt = "%m/%d %H:00"
    else:
        fmt = "%H:%M"

    def _label(timestamp_ms: int) -> str:
        return datetime.fromtimestamp(timestamp_ms / 1000, tz=tz).strftime(fmt)

    return _label


def merge_series(
    primary: Iterable[Sequence[Any]] | None,
    secondary: Iterable[Sequence[Any]] | None,
    fallback_b: float,
    label_fn: Callable[[int], str],
) -> list[TimeSeriesPoint]:
    """Merge two kline series by open time.

    Every primary point is kept; a missing or zero secondary close becomes
    ``fallback_b``. When the primary series is empty the secondary timestamps
    drive the output and ``value_a`` is zero.
    """
    primary_rows = list(primary or [])
    secondary_rows = list(secondary or [])

    secondary_by_ts: dict[int, float] = {
        int(row[OPEN_TIME]): float(row[CLOSE]) for row in secondary_rows
    }

    base_rows = primary_rows if primary_rows else secondary_rows
    has_primary = bool(primary_rows)

    points: list[TimeSeriesPoint] = []
    for row in base_rows:
        timestamp = int(row[OPEN_TIME])
        value_a = float(row[CLOSE]) if has_primary else 0.0
        value_b = secondary_by_ts.get(timestamp) or fallback_b
        points.append(
            TimeSeriesPoint(
                display_label=label_fn(timestamp),
                timestamp_ms=timestamp,
                value_a=value_a,
                value_b=value_b,
            )
        )
    return points
