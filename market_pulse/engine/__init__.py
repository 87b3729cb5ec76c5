"""Dashboard engine: state container and the refresh loop that owns it."""

from market_pulse.engine.refresh_loop import RefreshLoop
from market_pulse.engine.state import DashboardState, LoopStatus, OverlapPolicy, Trigger

__all__ = [
    "DashboardState",
    "LoopStatus",
    "OverlapPolicy",
    "RefreshLoop",
    "Trigger",
]
