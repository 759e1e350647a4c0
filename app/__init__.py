"""Web application: FastAPI routes, WebSocket protocol and app state."""
