"""
Delegation engine — the supervisor round-trip / resolve / resend loop.

``DelegationLoop`` owns the state machine:

    AWAITING_RESPONSE → (tool calls?) → EXECUTING_TOOLS → AWAITING_RESPONSE → … → DONE | FAILED

Each ``run`` builds a fresh ``SupervisorRequest``; nothing is shared between
invocations, so concurrent sessions never see each other's accumulator.
Tool calls inside one response batch are resolved strictly in receipt order,
one at a time, and the request is only resent once every call in the batch
has both its echo and its output appended.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Callable, Protocol

from pydantic import BaseModel, ConfigDict, Field

from . import observability
from .config import get_settings
from .schemas.items import (
    ConversationItem,
    SupervisorRequest,
    SupervisorResponse,
    ToolCallRequest,
    ToolCallResult,
    message_items,
)
from .tools import ToolArgumentsError, ToolExecutor, tool_catalog

logger = logging.getLogger(__name__)

Breadcrumb = Callable[..., None]


class SupportsSend(Protocol):
    async def send(self, request: SupervisorRequest) -> SupervisorResponse: ...


class LoopState(str, Enum):
    AWAITING_RESPONSE = "awaiting_response"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    FAILED = "failed"


class DelegationOutcome(BaseModel):
    """Terminal result of one loop run. ``text`` is empty whenever ``state`` is FAILED."""

    state: LoopState
    text: str = ""
    error: str | None = None
    rounds: int = 0
    tool_calls: int = 0

    @property
    def ok(self) -> bool:
        return self.state is LoopState.DONE


def build_context_block(history: list[ConversationItem], relevant_context: str = "") -> str:
    transcript = json.dumps([item.to_context() for item in message_items(history)], indent=2, ensure_ascii=False)
    return (
        "==== Conversation History ====\n"
        f"{transcript}\n\n"
        "==== Relevant Context From Last User Message ===\n"
        f"{relevant_context or ''}\n"
    )


class DelegationLoop(BaseModel):
    """Drives one supervisor request to a final answer.

    ``client`` performs the network round-trips, ``executor`` resolves tool
    calls locally. ``max_rounds`` bounds the number of round-trips per run.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_default=True)

    name: str = "supervisorAgent"
    instructions: str
    client: Any
    executor: ToolExecutor
    tools: list[dict[str, Any]] = Field(default_factory=tool_catalog)
    max_rounds: int = Field(
        default_factory=lambda: get_settings().supervisor_max_rounds,
        ge=1,
    )

    # ── seeding ──────────────────────────────────────────────────────────

    def seed(self, history: list[ConversationItem], relevant_context: str = "") -> SupervisorRequest:
        return SupervisorRequest(
            instructions=self.instructions,
            context_block=build_context_block(history, relevant_context),
            tools=list(self.tools),
        )

    # ── observer ─────────────────────────────────────────────────────────

    def _notify(self, breadcrumb: Breadcrumb | None, title: str, data: Any = None) -> None:
        if breadcrumb is None:
            return
        try:
            breadcrumb(title, data)
        except Exception as exc:
            logger.warning("Breadcrumb observer raised, ignoring: %s", exc)

    # ── tool resolution ──────────────────────────────────────────────────

    def _resolve_call(self, call: ToolCallRequest, trace_id: str, breadcrumb: Breadcrumb | None) -> ToolCallResult:
        args = self.executor.decode_arguments(call.name, call.arguments)
        self._notify(breadcrumb, f"[{self.name}] function call: {call.name}", args)
        observability.log_event(
            "tool_start",
            agent=self.name,
            trace_id=trace_id,
            meta={"tool": call.name, "call_id": call.call_id, "inputs": args},
        )
        result = self.executor.execute(call.name, args)
        observability.log_event(
            "tool_end",
            agent=self.name,
            trace_id=trace_id,
            meta={"tool": call.name, "call_id": call.call_id, "result": result},
        )
        self._notify(breadcrumb, f"[{self.name}] function call result: {call.name}", result)
        return ToolCallResult(call_id=call.call_id, output=result)

    # ── loop ─────────────────────────────────────────────────────────────

    def _fail(self, trace_id: str, reason: str, rounds: int, tool_calls: int) -> DelegationOutcome:
        observability.log_event(
            "loop_failed",
            agent=self.name,
            trace_id=trace_id,
            status="error",
            meta={"reason": reason, "rounds": rounds, "tool_calls": tool_calls},
        )
        logger.warning("Delegation failed after %d round(s): %s", rounds, reason)
        return DelegationOutcome(state=LoopState.FAILED, error=reason, rounds=rounds, tool_calls=tool_calls)

    async def resolve(self, request: SupervisorRequest, breadcrumb: Breadcrumb | None = None) -> DelegationOutcome:
        """Run the state machine over an already-seeded request."""
        with observability.trace_scope(self.name, request.context_block, meta={"max_rounds": self.max_rounds}) as trace_id:
            state = LoopState.AWAITING_RESPONSE
            rounds = 0
            executed = 0

            while True:
                rounds += 1
                response = await self.client.send(request)
                if response.failed:
                    return self._fail(trace_id, response.error or "transport failure", rounds, executed)

                calls = response.function_calls
                if not calls:
                    text = response.final_text()
                    observability.log_event(
                        "answer",
                        agent=self.name,
                        trace_id=trace_id,
                        message=text,
                        meta={"rounds": rounds, "tool_calls": executed},
                    )
                    return DelegationOutcome(state=LoopState.DONE, text=text, rounds=rounds, tool_calls=executed)

                if rounds >= self.max_rounds:
                    return self._fail(trace_id, "max_rounds_exceeded", rounds, executed)

                state = LoopState.EXECUTING_TOOLS
                logger.debug("Round %d: %s with %d call(s)", rounds, state.value, len(calls))
                for call in calls:
                    try:
                        result = self._resolve_call(call, trace_id, breadcrumb)
                    except ToolArgumentsError as exc:
                        logger.warning("Malformed tool arguments: %s", exc)
                        return self._fail(trace_id, "malformed_tool_arguments", rounds, executed)
                    request.append_exchange(call, result)
                    executed += 1
                state = LoopState.AWAITING_RESPONSE

    async def run(
        self,
        history: list[ConversationItem],
        relevant_context: str = "",
        *,
        breadcrumb: Breadcrumb | None = None,
    ) -> DelegationOutcome:
        return await self.resolve(self.seed(history, relevant_context), breadcrumb)
