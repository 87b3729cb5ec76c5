"""Dashboard state container and the messages that mutate it."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from market_pulse.market.models import ChartMode, MarketSnapshot, TimeFrame


class LoopStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"


class OverlapPolicy(str, Enum):
    """What a refresh trigger does while another load is still in flight.

    LATEST: start a new load; only the newest load's result is applied.
    ALLOW: start a new load; every result is applied as it lands (last write wins).
    DROP: ignore the trigger; a timeframe change is replayed once the load settles.
    """

    LATEST = "latest"
    ALLOW = "allow"
    DROP = "drop"


class Trigger(str, Enum):
    START = "start"
    TIMER = "timer"
    MANUAL = "manual"
    TIMEFRAME = "timeframe"


@dataclass
class DashboardState:
    """Everything the display surface renders.

    Only the refresh loop's consumer task writes to this object.
    """

    timeframe: TimeFrame = TimeFrame.H1
    chart_mode: ChartMode = ChartMode.COMBINED
    status: LoopStatus = LoopStatus.IDLE
    snapshot: MarketSnapshot | None = None
    last_updated: datetime | None = None
    last_trigger: Trigger | None = None
    commentary: str = ""
    is_analyzing: bool = False
    loads_started: int = 0
    loads_applied: int = 0
    loads_discarded: int = 0
    version: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "timeframe": self.timeframe.value,
            "chart_mode": self.chart_mode.value,
            "status": self.status.value,
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "last_trigger": self.last_trigger.value if self.last_trigger else None,
            "commentary": self.commentary,
            "is_analyzing": self.is_analyzing,
            "loads_started": self.loads_started,
            "loads_applied": self.loads_applied,
            "loads_discarded": self.loads_discarded,
            "version": self.version,
        }


# Messages on the state-update channel


@dataclass(frozen=True)
class LoadRequested:
    trigger: Trigger
    kind: Literal["load_requested"] = "load_requested"


@dataclass(frozen=True)
class LoadCompleted:
    seq: int
    timeframe: TimeFrame
    snapshot: MarketSnapshot | None
    kind: Literal["load_completed"] = "load_completed"


@dataclass(frozen=True)
class TimeframeChanged:
    timeframe: TimeFrame
    kind: Literal["timeframe_changed"] = "timeframe_changed"


@dataclass(frozen=True)
class ChartModeChanged:
    chart_mode: ChartMode
    kind: Literal["chart_mode_changed"] = "chart_mode_changed"


@dataclass(frozen=True)
class CommentaryStarted:
    chart_mode: ChartMode
    kind: Literal["commentary_started"] = "commentary_started"


@dataclass(frozen=True)
class CommentaryCompleted:
    chart_mode: ChartMode
    text: str
    kind: Literal["commentary_completed"] = "commentary_completed"


StateUpdate = (
    LoadRequested
    | LoadCompleted
    | TimeframeChanged
    | ChartModeChanged
    | CommentaryStarted
    | CommentaryCompleted
)


@dataclass
class LoadBook:
    """Consumer-private bookkeeping for in-flight loads."""

    latest_seq: int = 0
    in_flight: set[int] = field(default_factory=set)
    replay_pending: bool = False
