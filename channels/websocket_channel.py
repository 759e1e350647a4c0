"""
WebSocketChannel — real-time browser UI connection.

Keeps one WebSocket per conversation session and pushes live updates
(fillers, replies, supervisor breadcrumbs, avatar commands) to it.
Used by the ``/ws`` endpoint in ``app/main.py``.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import PrivateAttr

from core.logging_core import log_info, log_warning

from .base import BaseChannel


class WebSocketChannel(BaseChannel):
    """WebSocket channel — session id → browser connection."""

    name: str = "websocket"
    _connections: dict[str, WebSocket] = PrivateAttr(default_factory=dict)

    def is_connected(self, session_id: str) -> bool:
        return session_id in self._connections

    async def connect(self, ws: WebSocket, *, session_id: str, **kwargs: Any) -> None:  # type: ignore[override]
        """Accept ``ws`` and bind it to ``session_id``, replacing any older socket."""
        await ws.accept()
        previous = self._connections.get(session_id)
        self._connections[session_id] = ws
        if previous is not None and previous is not ws:
            log_warning(__name__, "Session %s reconnected, dropping previous socket", session_id)
        log_info(__name__, "WebSocket connected (session=%s, total=%d)", session_id, len(self._connections))

    async def disconnect(  # type: ignore[override]
        self, session_id: str | None = None, *, ws: WebSocket | None = None, **kwargs: Any
    ) -> None:
        """Forget one session's socket (only if it is still ``ws``), or close every connection."""
        if session_id is not None:
            if ws is None or self._connections.get(session_id) is ws:
                self._connections.pop(session_id, None)
            log_info(__name__, "WebSocket disconnected (%d remaining)", len(self._connections))
            return
        for sock in list(self._connections.values()):
            try:
                await sock.close()
            except RuntimeError:
                # Already closed by the client.
                continue
        self._connections.clear()

    async def send(self, payload: dict, *, session_id: str | None = None, **kwargs: Any) -> None:
        await self.send_to_session(session_id, payload)

    async def send_to_session(self, session_id: str | None, payload: dict) -> bool:
        """Send ``payload`` to one session. Returns ``False`` if it is gone."""
        ws = self._connections.get(session_id) if session_id is not None else None
        if ws is None:
            return False
        try:
            await ws.send_text(json.dumps(payload, default=str))
        except (RuntimeError, OSError, WebSocketDisconnect) as exc:
            log_warning(__name__, "Dropping session %s after send failure: %s", session_id, exc)
            self._connections.pop(session_id, None)
            return False
        return True
