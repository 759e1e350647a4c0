"""
Application state — one Pydantic model for the whole running app.

Import the global singleton:
    from app.state import app_state
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from agents.front_agent import FrontAgent
from core.schemas.items import ConversationItem
from core.utils import utc_now_iso

_MAX_EVENTS = 100
_MAX_OBS_EVENTS = 300

# ═════════════════════════════════════════════════════════════════════════════
# Supporting models
# ═════════════════════════════════════════════════════════════════════════════


class Event(BaseModel):
    id: int
    type: str
    timestamp: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ObsEvent(BaseModel):
    id: str
    type: str
    timestamp: str
    agent: str | None = None
    trace_id: str | None = None
    status: str | None = None
    message: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class ConversationSession(BaseModel):
    """Transcript and front agent of one connected user."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str
    agent: FrontAgent
    history: list[ConversationItem] = Field(default_factory=list)
    is_processing: bool = False

    def add_message(self, role: str, text: str) -> ConversationItem:
        item = ConversationItem.message(role, text)
        self.history.append(item)
        return item

    def clear(self) -> None:
        self.history = []

    def snapshot(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "is_processing": self.is_processing,
            "messages": [{"role": item.role, "text": item.text} for item in self.history if item.is_message],
        }


# ═════════════════════════════════════════════════════════════════════════════
# AppState
# ═════════════════════════════════════════════════════════════════════════════


class AppState(BaseModel):
    """Global application state — the single source of truth."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    events: list[Event] = Field(default_factory=list)
    observability_events: list[ObsEvent] = Field(default_factory=list)
    sessions: dict[str, ConversationSession] = Field(default_factory=dict)

    _next_event_id: int = PrivateAttr(default=1)
    _next_obs_id: int = PrivateAttr(default=1)

    # ── events ───────────────────────────────────────────────────────────

    def add_event(self, event_type: str, content: str, metadata: dict | None = None) -> Event:
        event = Event(
            id=self._next_event_id,
            type=event_type,
            timestamp=utc_now_iso(),
            content=content,
            metadata=metadata or {},
        )
        self._next_event_id += 1
        self.events.append(event)
        if len(self.events) > _MAX_EVENTS:
            self.events = self.events[-_MAX_EVENTS:]
        return event

    # ── sessions ─────────────────────────────────────────────────────────

    def open_session(self, session_id: str, supervisor: Any) -> ConversationSession:
        """Return the session for ``session_id``, creating it on first use."""
        session = self.sessions.get(session_id)
        if session is None:
            session = ConversationSession(session_id=session_id, agent=FrontAgent(supervisor=supervisor))
            self.sessions[session_id] = session
            self.add_event("system", f"Session {session_id} opened")
        return session

    def close_session(self, session_id: str) -> None:
        if self.sessions.pop(session_id, None) is not None:
            self.add_event("system", f"Session {session_id} closed")

    # ── observability ────────────────────────────────────────────────────

    def add_observability_event(self, event: dict) -> ObsEvent:
        obs = ObsEvent(
            id=str(event.get("id") or f"obs_{self._next_obs_id}"),
            type=str(event.get("type", "log")),
            timestamp=str(event.get("ts") or event.get("timestamp") or utc_now_iso()),
            agent=event.get("agent"),
            trace_id=event.get("trace_id"),
            status=event.get("status"),
            message=event.get("message"),
            meta=event.get("meta") or {},
        )
        if event.get("id") is None:
            self._next_obs_id += 1
        self.observability_events.append(obs)
        if len(self.observability_events) > _MAX_OBS_EVENTS:
            self.observability_events = self.observability_events[-_MAX_OBS_EVENTS:]
        return obs

    def load_observability_events(self, events: list[dict]) -> None:
        self.observability_events = []
        for event in events:
            if isinstance(event, dict):
                self.add_observability_event(event)

    # ── snapshot ──────────────────────────────────────────────────────────

    def get_full_state(self, session_id: str | None = None) -> dict:
        state: dict[str, Any] = {
            "events": [e.model_dump() for e in self.events[-50:]],
            "observability_events": [e.model_dump() for e in self.observability_events[-200:]],
            "sessions": sorted(self.sessions),
        }
        if session_id is not None and session_id in self.sessions:
            state["session"] = self.sessions[session_id].snapshot()
        return state


# ── global singleton ────────────────────────────────────────────────────────

app_state = AppState()
