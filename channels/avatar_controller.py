"""
WebSocketAvatarController — drives a browser-hosted avatar session.

The avatar SDK runs in the browser; the server only tells it what to do.
Every call becomes one ``avatar`` message on the session's WebSocket.
"""

from __future__ import annotations

from core.interfaces import AvatarController, AvatarTaskType
from core.logging_core import log_debug

from app import protocol

from .websocket_channel import WebSocketChannel


class WebSocketAvatarController(AvatarController):
    def __init__(self, channel: WebSocketChannel, session_id: str) -> None:
        self._channel = channel
        self._session_id = session_id
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def _push(self, action: str, **fields) -> None:
        log_debug(__name__, "avatar %s -> %s", action, self._session_id)
        await self._channel.send_to_session(self._session_id, protocol.avatar_command(action, **fields))

    async def initialize(self, token: str) -> None:
        await self._push("start", token=token)
        self._started = True

    async def speak(self, text: str, task_type: AvatarTaskType = AvatarTaskType.REPEAT) -> None:
        if not text:
            return
        await self._push("speak", text=text, task_type=AvatarTaskType(task_type).value)

    async def interrupt(self) -> None:
        await self._push("interrupt")

    async def stop(self) -> None:
        await self._push("stop")
        self._started = False
