"""Prompt templates for the AI market commentary, one per chart mode."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from market_pulse.market.models import CandleRangeSample, ChartMode, MarketSnapshot

ROLE_TITLES = {
    ChartMode.BTC: "Crypto Trader Pro",
    ChartMode.GOLD: "Gold Commodities Expert",
    ChartMode.COMBINED: "Macro Market Strategist",
}


@dataclass(frozen=True)
class CommentaryInputs:
    """The numbers a commentary prompt embeds.

    Attributes:
        funding_rate_pct: Headline funding rate already scaled to percent
    """

    btc_price: float
    btc_change: float
    gold_price: float
    gold_change: float
    funding_rate_pct: float
    btc_ranges: list[CandleRangeSample] = field(default_factory=list)
    gold_ranges: list[CandleRangeSample] = field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: MarketSnapshot) -> "CommentaryInputs":
        funding = snapshot.funding[0].rate * 100 if snapshot.funding else 0.0
        return cls(
            btc_price=snapshot.primary.price,
            btc_change=snapshot.primary.change_percent,
            gold_price=snapshot.secondary.price,
            gold_change=snapshot.secondary.change_percent,
            funding_rate_pct=funding,
            btc_ranges=list(snapshot.primary_ranges),
            gold_ranges=list(snapshot.secondary_ranges),
        )


def role_title(mode: ChartMode | str) -> str:
    """Panel heading for the analyst persona of a mode."""
    return ROLE_TITLES.get(ChartMode(mode), ROLE_TITLES[ChartMode.COMBINED])


def _num(value: float) -> str:
    return format(value, ".10g")


def format_ranges(samples: Sequence[CandleRangeSample]) -> str:
    """Render bucket samples as the bullet list the prompts embed."""
    return "\n".join(
        f"- {s.label}: Range {s.range_percent:.2f}% (High: ${_num(s.high)}, Low: ${_num(s.low)})"
        for s in samples
    )


def _daily_range(samples: Sequence[CandleRangeSample]) -> str:
    for sample in samples:
        if "24" in sample.label:
            return f"{sample.range_percent:.2f}%"
    return "n/a"


def _btc_prompt(data: CommentaryInputs) -> tuple[str, str]:
    system = (
        "You are a professional Bitcoin trader (Crypto Trader Pro) writing a deep-dive "
        "technical read of BTC/USDT across several timeframes."
    )
    user = f"""Market data:

1. **Price**: ${_num(data.btc_price)} (24h: {_num(data.btc_change)}%)
2. **Sentiment & leverage**: Funding Rate {_num(data.funding_rate_pct)}% (high positive = crowded longs/FOMO, negative = crowded shorts).
3. **Volatility structure**:
{format_ranges(data.btc_ranges)}

**Analysis required:**
1. **Market structure**: read price action from the 4H and 24H high/low. Which side is in control?
2. **Liquidity zones**: identify the key support and resistance levels.
3. **TRADING SIGNAL**: give one clear conclusion:
   - 🟢 **BUY (LONG)**: which entry zone?
   - 🔴 **SELL (SHORT)**: which entry zone?
   - 🟡 **WAIT**: if the market is ranging.

Answer briefly in Markdown with icons. Focus on the signal."""
    return system, user


def _gold_prompt(data: CommentaryInputs) -> tuple[str, str]:
    system = (
        "You are a professional gold and commodities trader writing a deep-dive "
        "technical read of gold (XAU/USD via PAXG)."
    )
    user = f"""Market data:

1. **Price**: ${_num(data.gold_price)} (24h: {_num(data.gold_change)}%)
2. **Volatility structure**:
{format_ranges(data.gold_ranges)}

**Analysis required:**
1. **Primary trend**: judge the trend from the 4H and 24H ranges.
2. **Market sentiment**: is money seeking shelter or taking profit?
3. **TRADING SIGNAL**: give one conclusion:
   - 🟢 **LONG**
   - 🔴 **SHORT**
   - 🟡 **NEUTRAL (watch)**

Answer briefly in Markdown with icons."""
    return system, user


def _combined_prompt(data: CommentaryInputs) -> tuple[str, str]:
    system = (
        "You are a macro strategist analysing the cross-market relationship "
        "between Bitcoin and gold."
    )
    user = f"""Market data:

- **BTC**: ${_num(data.btc_price)} ({_num(data.btc_change)}%)
- **Gold**: ${_num(data.gold_price)} ({_num(data.gold_change)}%)

- **BTC volatility**: 24H range is {_daily_range(data.btc_ranges)}
- **Gold volatility**: 24H range is {_daily_range(data.gold_ranges)}

**Analysis required:**
1. **Correlation**: are the two assets moving together (risk-on/risk-off) or apart (flight to safety)?
2. **Smart money**: where is money flowing harder, judging by % change and volatility?
3. **Allocation**: suggest a short-term split (e.g. 70% BTC / 30% Gold).

Answer briefly and concisely in Markdown."""
    return system, user


def build_prompt(data: CommentaryInputs, mode: ChartMode | str) -> tuple[str, str]:
    """Return the (system, user) prompt pair for a chart mode.

    Raises:
        ValueError: If ``mode`` is not a known chart mode.
    """
    mode = ChartMode(mode)
    if mode is ChartMode.BTC:
        return _btc_prompt(data)
    if mode is ChartMode.GOLD:
        return _gold_prompt(data)
    return _combined_prompt(data)
