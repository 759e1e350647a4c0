"""Wire schemas — supervisor items and WebSocket client events."""
