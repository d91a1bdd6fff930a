"""Interactive duplex WebSocket client."""

__version__ = "0.3.0"
