"""Market Pulse: live BTC/gold dashboard with funding rates and AI commentary."""

__version__ = "0.1.0"
