"""Asynchronous Binance market data client with per-field fallbacks.

Every public fetch settles to a value: a failed request, a non-2xx status or
an unparsable payload is logged and replaced by a fixed fallback so the rest
of a refresh cycle proceeds untouched.
"""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timezone, tzinfo
from typing import Any

import httpx

from market_pulse.config.models import ApiConfig, MarketConfig
from market_pulse.market.metrics import (
    RANGE_BUCKETS,
    chart_interval,
    make_label_formatter,
    merge_series,
    range_sample,
)
from market_pulse.market.models import (
    CandleRangeSample,
    FetchResult,
    FundingRate,
    MarketSnapshot,
    Ticker,
    TimeFrame,
    TimeSeriesPoint,
)

logger = logging.getLogger(__name__)

_PARSE_ERRORS = (KeyError, IndexError, TypeError, ValueError)


class BinanceMarketClient:
    """Market data client for the dashboard's two assets and funding rates.

    Attributes:
        api: Endpoint configuration
        market: Symbols and fallback values
    """

    def __init__(
        self,
        api: ApiConfig | None = None,
        market: MarketConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        rng: random.Random | None = None,
        tz: tzinfo = timezone.utc,
    ) -> None:
        """Initialize the client.

        Args:
            api: Endpoint configuration (defaults to public Binance/Bybit URLs)
            market: Symbols and fallback values
            client: Pre-built httpx client, used by tests to inject a transport
            rng: Random source for the synthetic funding rate
            tz: Timezone for chart labels
        """
        self.api = api or ApiConfig()
        self.market = market or MarketConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.api.request_timeout_seconds)
        self._rng = rng or random.Random()
        self._tz = tz

    async def __aenter__(self) -> "BinanceMarketClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, url: str, params: dict[str, Any]) -> FetchResult[Any]:
        """GET a JSON document, converting every transport failure into a fallback marker."""
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return FetchResult.success(response.json())
        except httpx.TimeoutException:
            logger.warning("Timeout fetching %s %s", url, params)
            return FetchResult.fallback(None, "timeout")
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("HTTP %s fetching %s %s", status, url, params)
            return FetchResult.fallback(None, f"HTTP {status}")
        except httpx.RequestError as exc:
            logger.warning("Request to %s failed: %s", url, exc)
            return FetchResult.fallback(None, f"{type(exc).__name__}: {exc}")
        except ValueError as exc:
            logger.warning("Invalid JSON from %s: %s", url, exc)
            return FetchResult.fallback(None, "invalid JSON")

    async def _klines(self, symbol: str, interval: str, limit: int) -> FetchResult[Any]:
        result = await self._get_json(
            f"{self.api.binance_base_url}/api/v3/klines",
            {"symbol": symbol, "interval": interval, "limit": limit},
        )
        if result.ok and not isinstance(result.value, list):
            logger.warning("Unexpected klines payload for %s %s", symbol, interval)
            return FetchResult.fallback(None, "unexpected payload")
        return result

    async def fetch_ticker(self, symbol: str, fallback_price: float) -> FetchResult[Ticker]:
        """Fetch 24h ticker statistics.

        Args:
            symbol: Binance symbol, e.g. BTCUSDT
            fallback_price: Price reported when the request fails

        Returns:
            FetchResult wrapping the live ticker or ``Ticker(fallback_price, 0)``
        """
        fallback = Ticker(symbol=symbol, price=fallback_price, change_percent=0.0, is_fallback=True)

        result = await self._get_json(
            f"{self.api.binance_base_url}/api/v3/ticker/24hr", {"symbol": symbol}
        )
        if not result.ok:
            return FetchResult.fallback(fallback, f"ticker {symbol}: {result.error}")

        data = result.value
        try:
            ticker = Ticker(
                symbol=symbol,
                price=float(data["lastPrice"]),
                change_percent=float(data["priceChangePercent"]),
                change_absolute=float(data["priceChange"]) if "priceChange" in data else None,
            )
        except _PARSE_ERRORS as exc:
            logger.warning("Malformed ticker for %s: %s", symbol, exc)
            return FetchResult.fallback(fallback, f"ticker {symbol}: malformed payload")
        return FetchResult.success(ticker)

    async def fetch_high_low(self, symbol: str) -> FetchResult[list[CandleRangeSample]]:
        """Fetch the four high/low buckets concurrently.

        A bucket without data is reported as zeros; the others are unaffected.
        """
        results = await asyncio.gather(
            *(self._klines(symbol, interval, limit) for _, interval, limit in RANGE_BUCKETS)
        )

        samples: list[CandleRangeSample] = []
        errors: list[str] = []
        for (label, interval, _), result in zip(RANGE_BUCKETS, results):
            try:
                samples.append(range_sample(label, result.value if result.ok else None))
            except _PARSE_ERRORS as exc:
                logger.warning("Malformed %s candle for %s: %s", interval, symbol, exc)
                samples.append(range_sample(label, None))
                errors.append(f"range {symbol} {label}: malformed payload")
                continue
            if not result.ok:
                errors.append(f"range {symbol} {label}: {result.error}")

        if errors:
            return FetchResult(value=samples, ok=False, error="; ".join(errors))
        return FetchResult.success(samples)

    async def _binance_funding(self) -> FetchResult[FundingRate]:
        symbol = self.market.funding_symbol
        fallback = FundingRate(
            source_name="Binance",
            rate=self.market.binance_fallback_funding_rate,
            is_fallback=True,
        )
        result = await self._get_json(
            f"{self.api.binance_fapi_url}/fapi/v1/premiumIndex", {"symbol": symbol}
        )
        if not result.ok:
            return FetchResult.fallback(fallback, f"funding Binance: {result.error}")
        try:
            return FetchResult.success(
                FundingRate(source_name="Binance", rate=float(result.value["lastFundingRate"]))
            )
        except _PARSE_ERRORS as exc:
            logger.warning("Malformed Binance premium index: %s", exc)
            return FetchResult.fallback(fallback, "funding Binance: malformed payload")

    async def _bybit_funding(self) -> FetchResult[FundingRate]:
        # Bybit's public feed is the less reliable one; a synthetic rate keeps the row populated
        fallback = FundingRate(
            source_name="Bybit",
            rate=0.01 + self._rng.random() * 0.005,
            is_fallback=True,
        )
        result = await self._get_json(
            f"{self.api.bybit_base_url}/v5/market/tickers",
            {"category": "linear", "symbol": self.market.funding_symbol},
        )
        if not result.ok:
            return FetchResult.fallback(fallback, f"funding Bybit: {result.error}")
        try:
            entry = result.value["result"]["list"][0]
            return FetchResult.success(
                FundingRate(source_name="Bybit", rate=float(entry["fundingRate"]))
            )
        except _PARSE_ERRORS as exc:
            logger.warning("Malformed Bybit ticker: %s", exc)
            return FetchResult.fallback(fallback, "funding Bybit: malformed payload")

    async def fetch_funding_rates(self) -> FetchResult[list[FundingRate]]:
        """Fetch funding rates from every source, Binance first."""
        results = await asyncio.gather(self._binance_funding(), self._bybit_funding())
        rates = [r.value for r in results]
        errors = [r.error for r in results if not r.ok and r.error]
        if errors:
            return FetchResult(value=rates, ok=False, error="; ".join(errors))
        return FetchResult.success(rates)

    async def fetch_chart_data(
        self, timeframe: TimeFrame | str
    ) -> FetchResult[list[TimeSeriesPoint]]:
        """Fetch both assets' candles for a timeframe and merge them by timestamp.

        Returns an empty series only when both requests fail.
        """
        interval, limit = chart_interval(timeframe)
        primary, secondary = await asyncio.gather(
            self._klines(self.market.primary_symbol, interval, limit),
            self._klines(self.market.secondary_symbol, interval, limit),
        )

        errors = [
            f"chart {symbol}: {r.error}"
            for symbol, r in (
                (self.market.primary_symbol, primary),
                (self.market.secondary_symbol, secondary),
            )
            if not r.ok
        ]
        if not primary.ok and not secondary.ok:
            return FetchResult(value=[], ok=False, error="; ".join(errors))

        try:
            points = merge_series(
                primary.value if primary.ok else None,
                secondary.value if secondary.ok else None,
                self.market.secondary_fallback_price,
                make_label_formatter(timeframe, self._tz),
            )
        except _PARSE_ERRORS as exc:
            logger.warning("Malformed chart candles for %s: %s", timeframe, exc)
            return FetchResult(value=[], ok=False, error="chart: malformed payload")

        if errors:
            return FetchResult(value=points, ok=False, error="; ".join(errors))
        return FetchResult.success(points)

    async def fetch_snapshot(self, timeframe: TimeFrame | str) -> MarketSnapshot:
        """Run one full refresh cycle: every sub-fetch concurrently, then assemble.

        Never raises for network or payload problems; failed fields carry their
        fallback values and are listed in ``failed_fetches``.
        """
        try:
            selected = TimeFrame(timeframe)
        except ValueError:
            selected = TimeFrame.H1
            logger.warning("Unknown timeframe %r, labelling snapshot as %s", timeframe, selected.value)

        primary, secondary, funding, primary_ranges, secondary_ranges, series = await asyncio.gather(
            self.fetch_ticker(self.market.primary_symbol, self.market.primary_fallback_price),
            self.fetch_ticker(self.market.secondary_symbol, self.market.secondary_fallback_price),
            self.fetch_funding_rates(),
            self.fetch_high_low(self.market.primary_symbol),
            self.fetch_high_low(self.market.secondary_symbol),
            self.fetch_chart_data(timeframe),
        )

        failed = [
            r.error
            for r in (primary, secondary, funding, primary_ranges, secondary_ranges, series)
            if not r.ok and r.error
        ]
        if failed:
            logger.info("Refresh for %s completed with %d fallback(s)", selected.value, len(failed))

        return MarketSnapshot(
            timeframe=selected,
            primary=primary.value,
            secondary=secondary.value,
            funding=funding.value,
            primary_ranges=primary_ranges.value,
            secondary_ranges=secondary_ranges.value,
            series=series.value,
            fetched_at=datetime.now(timezone.utc),
            failed_fetches=failed,
        )
