"""
WebSocket message protocol — the contract between the backend and the avatar UI.

Any frontend that speaks these message types can drive a session.
Inbound messages are parsed with ``core.schemas.events.client_event_adapter``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from core.utils import utc_now_iso

# ═════════════════════════════════════════════════════════════════════════════
# Outbound (server → client)
# ═════════════════════════════════════════════════════════════════════════════


class WSMessage(BaseModel):
    """Base WebSocket message."""

    type: str
    timestamp: str = Field(default_factory=utc_now_iso)
    data: dict[str, Any] = Field(default_factory=dict)


class ChatResponse(WSMessage):
    """Front-agent utterance (a filler or a reply)."""

    type: str = "chat_response"


class StatusUpdate(WSMessage):
    """Processing status change (thinking, done, cleared)."""

    type: str = "status"


class StepEvent(WSMessage):
    """Supervisor breadcrumb for the activity feed."""

    type: str = "step"


class AvatarCommand(WSMessage):
    """Instruction for the browser-hosted avatar session."""

    type: str = "avatar"


class ErrorEvent(WSMessage):
    type: str = "error"


class StateSync(WSMessage):
    type: str = "state_sync"


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════


def chat_response(content: str, agent: str | None = None, *, kind: str = "reply") -> dict:
    return ChatResponse(data={"content": content, "agent": agent or "chatAgent", "kind": kind}).model_dump()


def status_update(status: str, detail: str = "") -> dict:
    return StatusUpdate(data={"status": status, "detail": detail}).model_dump()


def error_event(message: str, agent: str | None = None) -> dict:
    return ErrorEvent(data={"content": message, "agent": agent}).model_dump()


def step_event(title: str, payload: Any = None, agent: str = "supervisorAgent") -> dict:
    """Breadcrumb step: ``title`` as emitted by the delegation loop, plus its data."""
    return StepEvent(data={"title": title, "content": payload, "agent": agent}).model_dump(mode="json")


def avatar_command(action: str, **fields: Any) -> dict:
    """``action`` is one of ``start``, ``speak``, ``interrupt``, ``stop``."""
    return AvatarCommand(data={"action": action, **fields}).model_dump()


def state_sync(state: dict) -> dict:
    return StateSync(data=state).model_dump()
