"""
FastAPI backend — avatar vendor proxy, supervisor tool endpoint and the
per-session WebSocket that drives the front agent.

Routes:
    GET  /api/state         — App snapshot (``?session=`` adds that session)
    POST /api/token         — Mint a short-lived avatar streaming token
    GET  /api/avatars       — List streaming avatars
    POST /api/supervisor    — ``getNextResponseFromSupervisor`` over HTTP
    GET  /api/front-agent   — Realtime session config for the front agent
    WS   /ws?session=<id>   — Bidirectional session socket
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import Field, ValidationError

from agents.front_agent import FrontAgent
from agents.supervisor import SupervisorAgent, SupervisorToolArgs, build_supervisor, get_supervisor
from app import protocol
from app.state import ConversationSession, app_state
from channels import WebSocketAvatarController, WebSocketChannel
from core import observability
from core.avatar_vendor import AvatarVendorError, HeyGenClient, build_avatar_vendor
from core.config import get_settings
from core.logging_core import configure_logging, log_exception, log_info, log_warning
from core.schemas.events import (
    ClientCollectEvent,
    ClientSystemEvent,
    ClientTextEvent,
    SystemCommand,
    client_event_adapter,
)
from core.schemas.items import ConversationItem

# ── logging ──────────────────────────────────────────────────────────────────

configure_logging(get_settings().log_level)

# ── singletons ───────────────────────────────────────────────────────────────

ws_channel = WebSocketChannel()

avatar_vendor: HeyGenClient | None = None


def get_avatar_vendor() -> HeyGenClient:
    global avatar_vendor
    if avatar_vendor is None:
        avatar_vendor = build_avatar_vendor()
    return avatar_vendor


class SupervisorCallBody(SupervisorToolArgs):
    """``/api/supervisor`` body: the tool argument plus the front agent's transcript."""

    history: list[ConversationItem] = Field(default_factory=list)


# ── lifespan ─────────────────────────────────────────────────────────────────


def _obs_sink(event: dict) -> None:
    app_state.add_observability_event(event)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: build the supervisor, load traces. Shutdown: close vendor and sockets."""
    build_supervisor()
    app_state.add_event("system", "Supervisor built")
    await ws_channel.initialize()

    app_state.load_observability_events(observability.read_recent_events(limit=200))
    observability.register_sink(_obs_sink)
    observability.log_event("system", message="server_start", agent="server")
    app_state.add_event("system", "Server ready")

    try:
        yield
    finally:
        log_info(__name__, "Shutting down...")
        observability.log_event("system", message="server_shutdown", agent="server")
        observability.unregister_sink(_obs_sink)
        if avatar_vendor is not None:
            await avatar_vendor.shutdown()
        await ws_channel.shutdown()


# ── app ──────────────────────────────────────────────────────────────────────

app = FastAPI(title="Chat Supervisor", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AvatarVendorError)
async def avatar_vendor_error_handler(request: Request, exc: AvatarVendorError) -> JSONResponse:
    log_warning(__name__, "%s %s failed: %s", request.method, request.url.path, exc.error_code)
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


# ── API routes ───────────────────────────────────────────────────────────────


@app.get("/api/state")
async def get_state(session: str | None = None):
    return app_state.get_full_state(session)


@app.post("/api/token")
async def create_token(vendor: HeyGenClient = Depends(get_avatar_vendor)):
    token = await vendor.create_token()
    return token.model_dump()


@app.get("/api/avatars")
async def list_avatars(vendor: HeyGenClient = Depends(get_avatar_vendor)):
    avatars = await vendor.list_avatars()
    return {"data": [avatar.model_dump(exclude_none=True) for avatar in avatars]}


@app.post("/api/supervisor")
async def call_supervisor(body: SupervisorCallBody, supervisor: SupervisorAgent = Depends(get_supervisor)):
    return await supervisor.get_next_response(body.relevant_context, body.history)


@app.get("/api/front-agent")
async def front_agent_config(supervisor: SupervisorAgent = Depends(get_supervisor)):
    return FrontAgent(supervisor=supervisor).session_config()


# ── WebSocket ────────────────────────────────────────────────────────────────


async def _run_turn(session: ConversationSession, event: ClientTextEvent, avatar: WebSocketAvatarController) -> None:
    """One front-agent turn: filler + delegation + reply, all relayed to the session."""
    session_id = session.session_id
    agent = session.agent
    steps: list[asyncio.Task] = []
    loop = asyncio.get_running_loop()

    def breadcrumb(title: str, data: Any = None) -> None:
        steps.append(loop.create_task(ws_channel.send_to_session(session_id, protocol.step_event(title, data))))

    async def speak(text: str, kind: str) -> None:
        if kind == "reply" and steps:
            await asyncio.gather(*steps)
            steps.clear()
        await ws_channel.send_to_session(session_id, protocol.chat_response(text, agent.name, kind=kind))
        await avatar.speak(text)

    text = event.text.strip()
    history = list(session.history)
    session.add_message("user", text)
    session.is_processing = True
    await ws_channel.send_to_session(session_id, protocol.status_update("thinking", text))
    try:
        turn = await agent.handle_turn(
            text,
            history,
            relevant_context=event.relevant_context,
            speak=speak,
            breadcrumb=breadcrumb,
        )
        session.add_message("assistant", turn.reply)
        if turn.error:
            await ws_channel.send_to_session(session_id, protocol.error_event(turn.error, "supervisorAgent"))
    except asyncio.CancelledError:
        for task in steps:
            task.cancel()
        log_info(__name__, "Turn cancelled (session=%s)", session_id)
        raise
    except Exception as exc:
        log_exception(__name__, "Turn failed (session=%s)", session_id)
        await ws_channel.send_to_session(session_id, protocol.error_event(f"Error: {exc}"))
    finally:
        session.is_processing = False
        await ws_channel.send_to_session(session_id, protocol.status_update("done"))


async def _collect_parameter(
    session: ConversationSession, event: ClientCollectEvent, avatar: WebSocketAvatarController
) -> None:
    """Front agent asks the user for a parameter the supervisor still needs."""
    session_id = session.session_id
    agent = session.agent

    async def speak(text: str, kind: str) -> None:
        await ws_channel.send_to_session(session_id, protocol.chat_response(text, agent.name, kind=kind))
        await avatar.speak(text)

    try:
        turn = await agent.handle_parameter_request(event.tool, event.field, speak=speak)
    except ValueError as exc:
        await ws_channel.send_to_session(session_id, protocol.error_event(str(exc), agent.name))
        return
    session.add_message("assistant", turn.reply)


async def _cancel(task: asyncio.Task | None) -> None:
    if task is None or task.done():
        return
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


@app.websocket("/ws")
async def websocket_endpoint(
    ws: WebSocket,
    supervisor: SupervisorAgent = Depends(get_supervisor),
    vendor: HeyGenClient = Depends(get_avatar_vendor),
):
    session_id = ws.query_params.get("session") or f"sess_{uuid4().hex[:12]}"
    await ws_channel.connect(ws, session_id=session_id)
    session = app_state.open_session(session_id, supervisor)
    avatar = WebSocketAvatarController(ws_channel, session_id)
    turn_task: asyncio.Task | None = None

    await ws_channel.send_to_session(session_id, protocol.state_sync(app_state.get_full_state(session_id)))

    try:
        while True:
            raw = await ws.receive_text()
            try:
                event = client_event_adapter.validate_json(raw)
            except ValidationError as exc:
                await ws_channel.send_to_session(session_id, protocol.error_event(f"Invalid event ({exc.error_count()} errors)"))
                continue

            if isinstance(event, ClientTextEvent):
                if not event.text.strip():
                    continue
                # A new utterance barges in on the previous turn.
                await _cancel(turn_task)
                turn_task = asyncio.create_task(_run_turn(session, event, avatar))

            elif isinstance(event, ClientCollectEvent):
                await _cancel(turn_task)
                await _collect_parameter(session, event, avatar)

            elif isinstance(event, ClientSystemEvent):
                if event.command is SystemCommand.START:
                    try:
                        token = await vendor.create_token()
                    except AvatarVendorError as exc:
                        await ws_channel.send_to_session(session_id, protocol.error_event(exc.error_message, "avatar"))
                        continue
                    await avatar.initialize(token.token)
                elif event.command is SystemCommand.CLEAR:
                    await _cancel(turn_task)
                    session.clear()
                    await ws_channel.send_to_session(session_id, protocol.status_update("cleared"))
                elif event.command is SystemCommand.INTERRUPT:
                    await _cancel(turn_task)
                    await avatar.interrupt()
                elif event.command is SystemCommand.STOP:
                    await _cancel(turn_task)
                    await avatar.stop()

    except WebSocketDisconnect:
        pass
    except Exception:
        log_exception(__name__, "WebSocket error (session=%s)", session_id)
    finally:
        await _cancel(turn_task)
        await ws_channel.disconnect(session_id, ws=ws)
        if not ws_channel.is_connected(session_id):
            app_state.close_session(session_id)
