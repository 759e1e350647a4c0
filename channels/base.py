"""
BaseChannel — abstract interface for client connection mediums.

A channel lets an external client (today: the browser avatar UI) hold a
conversation session: send utterances in, receive fillers, replies,
breadcrumbs and avatar commands out.

Lifecycle:
    1. ``connect()``     — accept the transport and bind it to a session.
    2. ``send()``        — push a message to one session.
    3. ``disconnect()``  — tear down one session, or all of them.
"""

from __future__ import annotations

from typing import Any

from core.runtime import RuntimeObject


class BaseChannel(RuntimeObject):
    """Runtime contract for all communication channels."""

    name: str = "channel"

    async def connect(self, **kwargs: Any) -> None:
        raise NotImplementedError(f"{self.__class__.__name__} must implement connect().")

    async def disconnect(self, **kwargs: Any) -> None:
        raise NotImplementedError(f"{self.__class__.__name__} must implement disconnect().")

    async def send(self, payload: dict, **kwargs: Any) -> None:
        """Send a single JSON-serialisable message to one client."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement send().")

    async def _shutdown_impl(self) -> None:
        await self.disconnect()
