"""
Lightweight observability — append-only JSONL trace log with in-memory fan-out.

Every delegation turn runs inside a ``trace_scope``; the loop, the supervisor
client and the tool executor attach their events to the active trace.

Usage:
    from core.observability import log_event, trace_scope

    with trace_scope("supervisorAgent", context) as trace_id:
        log_event("tool_start", agent="supervisorAgent", trace_id=trace_id, meta={...})

Environment:
    OBSERVABILITY_ENABLED     — "false" silences everything (default "true")
    OBSERVABILITY_LOG_PATH    — JSONL destination (default data/observability.jsonl)
    OBSERVABILITY_MAX_DETAIL  — truncation length for strings (default 2000)
"""

from __future__ import annotations

import itertools
import json
import logging
import os
import threading
import time
from collections import deque
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Callable, Iterator
from uuid import uuid4

from .utils import utc_now_iso

logger = logging.getLogger(__name__)

Sink = Callable[[dict], None]

_TRACE_ID: ContextVar[str | None] = ContextVar("trace_id", default=None)
_SEQ = itertools.count(1)
_WRITE_LOCK = threading.Lock()
_SINKS: list[Sink] = []


def _enabled() -> bool:
    return os.getenv("OBSERVABILITY_ENABLED", "true").lower() in ("true", "1", "yes")


def _log_path() -> Path:
    return Path(os.getenv("OBSERVABILITY_LOG_PATH", "data/observability.jsonl"))


def _max_detail() -> int:
    try:
        return int(os.getenv("OBSERVABILITY_MAX_DETAIL", "2000"))
    except ValueError:
        return 2000


def _truncate(text: str, max_len: int) -> str:
    if max_len <= 0 or len(text) <= max_len:
        return text
    return text[: max(0, max_len - 3)] + "..."


def _sanitize(value: Any, max_len: int) -> Any:
    """Reduce arbitrary tool payloads to bounded JSON-safe values."""
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _truncate(value, max_len)
    if isinstance(value, (list, tuple)):
        return [_sanitize(item, max_len) for item in value]
    if isinstance(value, dict):
        return {str(k): _sanitize(v, max_len) for k, v in value.items()}
    if hasattr(value, "model_dump"):
        return _sanitize(value.model_dump(mode="json"), max_len)
    return _truncate(str(value), max_len)


def _append(event: dict) -> None:
    path = _log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(event, ensure_ascii=False)
    with _WRITE_LOCK:
        with path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")


# ── public API ───────────────────────────────────────────────────────────────


def register_sink(sink: Sink) -> None:
    """Register a callback that receives every event dict."""
    if sink not in _SINKS:
        _SINKS.append(sink)


def unregister_sink(sink: Sink) -> None:
    if sink in _SINKS:
        _SINKS.remove(sink)


def current_trace_id() -> str | None:
    return _TRACE_ID.get()


def new_trace_id() -> str:
    return f"trc_{uuid4().hex}"


def log_event(
    event_type: str,
    message: str | None = None,
    *,
    agent: str | None = None,
    trace_id: str | None = None,
    status: str | None = None,
    meta: dict | None = None,
) -> dict | None:
    """Record one event and fan it out to sinks. Never raises."""
    if not _enabled():
        return None

    max_len = _max_detail()
    event: dict[str, Any] = {
        "id": f"evt_{uuid4().hex[:12]}",
        "seq": next(_SEQ),
        "ts": utc_now_iso(),
        "type": event_type,
        "agent": agent,
        "trace_id": trace_id or _TRACE_ID.get(),
    }
    if message:
        event["message"] = _truncate(message, max_len)
    if status:
        event["status"] = status
    if meta:
        event["meta"] = _sanitize(meta, max_len)

    try:
        _append(event)
    except OSError as exc:
        logger.debug("observability write skipped: %s", exc)

    for sink in list(_SINKS):
        try:
            sink(event)
        except Exception as exc:
            logger.debug("observability sink %r failed: %s", sink, exc)

    return event


@contextmanager
def trace_scope(agent: str, query: str | None = None, meta: dict | None = None) -> Iterator[str]:
    """Open (or join) a trace and emit start/end events around the block."""
    existing = _TRACE_ID.get()
    is_root = existing is None
    trace_id = existing or new_trace_id()
    token = _TRACE_ID.set(trace_id) if is_root else None
    start = time.perf_counter()

    log_event("trace_start" if is_root else "agent_start", message=query, agent=agent, trace_id=trace_id, meta=meta)
    try:
        yield trace_id
    finally:
        log_event(
            "trace_end" if is_root else "agent_end",
            agent=agent,
            trace_id=trace_id,
            meta={"duration_ms": int((time.perf_counter() - start) * 1000)},
        )
        if token is not None:
            _TRACE_ID.reset(token)


def read_recent_events(limit: int = 200) -> list[dict]:
    """Read the most recent events from the JSONL log file."""
    path = _log_path()
    if not path.exists():
        return []

    lines: deque[str] = deque(maxlen=max(1, limit))
    try:
        with path.open("r", encoding="utf-8") as f:
            for raw in f:
                if raw.strip():
                    lines.append(raw.strip())
    except OSError:
        return []

    events: list[dict] = []
    for line in lines:
        try:
            events.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return events
