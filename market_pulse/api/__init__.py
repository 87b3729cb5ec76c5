"""HTTP and WebSocket surface of the dashboard."""

from market_pulse.api.server import create_app

__all__ = ["create_app"]
