"""
Conversation and supervisor wire items.

Hierarchy:
    ConversationItem     — one transcript record coming from the front agent
    ToolCallRequest      — a ``function_call`` issued by the supervisor model
    ToolCallResult       — the local answer to one ToolCallRequest
    OutputMessage        — a ``message`` item in a supervisor response
    SupervisorRequest    — per-turn accumulator sent on every round-trip
    SupervisorResponse   — ``error`` or an ordered ``output`` sequence
"""

from __future__ import annotations

import json
from typing import Any, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

MESSAGE = "message"
FUNCTION_CALL = "function_call"
FUNCTION_CALL_OUTPUT = "function_call_output"
_KNOWN_KINDS = (MESSAGE, FUNCTION_CALL, FUNCTION_CALL_OUTPUT)

TRANSPORT_FAILURE = "transport failure"


# ═════════════════════════════════════════════════════════════════════════════
# Transcript
# ═════════════════════════════════════════════════════════════════════════════


class ConversationItem(BaseModel):
    """A single transcript record. Extra realtime-SDK fields are preserved."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    item_id: str = Field(default_factory=lambda: f"item_{uuid4().hex[:12]}", alias="itemId")
    type: str = MESSAGE
    role: Literal["system", "user", "assistant"] | None = None
    content: Any = None

    @property
    def kind(self) -> str:
        return self.type if self.type in _KNOWN_KINDS else "other"

    @property
    def is_message(self) -> bool:
        return self.kind == MESSAGE

    @property
    def text(self) -> str:
        """Plain text of a message item (text or transcript parts joined)."""
        if isinstance(self.content, str):
            return self.content
        parts: list[str] = []
        for part in self.content or []:
            if isinstance(part, dict):
                value = part.get("text") or part.get("transcript")
                if isinstance(value, str):
                    parts.append(value)
        return "".join(parts)

    @classmethod
    def message(cls, role: Literal["system", "user", "assistant"], text: str) -> "ConversationItem":
        part_type = "output_text" if role == "assistant" else "input_text"
        return cls(type=MESSAGE, role=role, content=[{"type": part_type, "text": text}])

    def to_context(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def message_items(history: list[ConversationItem]) -> list[ConversationItem]:
    """Only ``message``-kind items are forwarded as supervisor context."""
    return [item for item in history if item.is_message]


# ═════════════════════════════════════════════════════════════════════════════
# Supervisor output items
# ═════════════════════════════════════════════════════════════════════════════


class ToolCallRequest(BaseModel):
    """A ``function_call`` from the supervisor. ``arguments`` stays raw JSON."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["function_call"] = FUNCTION_CALL
    call_id: str
    name: str
    arguments: str = "{}"

    @field_validator("arguments", mode="before")
    @classmethod
    def _null_arguments(cls, value: Any) -> Any:
        return "{}" if value is None or value == "" else value

    def echo(self) -> dict[str, Any]:
        return {"type": FUNCTION_CALL, "call_id": self.call_id, "name": self.name, "arguments": self.arguments}


class ToolCallResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["function_call_output"] = FUNCTION_CALL_OUTPUT
    call_id: str
    output: Any = None

    def to_item(self) -> dict[str, Any]:
        return {
            "type": FUNCTION_CALL_OUTPUT,
            "call_id": self.call_id,
            "output": json.dumps(self.output, ensure_ascii=False, default=str),
        }


class ContentPart(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    text: str | None = None


class OutputMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["message"] = MESSAGE
    role: str = "assistant"
    content: list[ContentPart] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def _null_content(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def text(self) -> str:
        return "".join(part.text or "" for part in self.content if part.type == "output_text")


class OtherOutputItem(BaseModel):
    """Any output item the loop does not act on (reasoning, web search, ...)."""

    model_config = ConfigDict(extra="allow")

    type: str


OutputItem = Union[OutputMessage, ToolCallRequest, OtherOutputItem]

_MESSAGE_ADAPTER = TypeAdapter(OutputMessage)
_CALL_ADAPTER = TypeAdapter(ToolCallRequest)


def parse_output_items(raw_items: list[Any]) -> list[OutputItem]:
    """Decode a raw ``output`` array, keeping receipt order.

    Raises ``ValueError`` (pydantic ``ValidationError``) on malformed items.
    """
    if not isinstance(raw_items, list):
        raise ValueError("output must be a list")
    items: list[OutputItem] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValueError(f"output item must be an object, got {type(raw).__name__}")
        kind = raw.get("type")
        if kind == MESSAGE:
            items.append(_MESSAGE_ADAPTER.validate_python(raw))
        elif kind == FUNCTION_CALL:
            items.append(_CALL_ADAPTER.validate_python(raw))
        else:
            items.append(OtherOutputItem.model_validate(raw))
    return items


# ═════════════════════════════════════════════════════════════════════════════
# Request / response
# ═════════════════════════════════════════════════════════════════════════════


class SupervisorRequest(BaseModel):
    """Mutable per-turn accumulator. ``items`` only ever grows."""

    instructions: str
    context_block: str
    tools: list[dict[str, Any]] = Field(default_factory=list)
    items: list[dict[str, Any]] = Field(default_factory=list)

    def append_exchange(self, call: ToolCallRequest, result: ToolCallResult) -> None:
        """Append the call echo followed by its output, correlated by ``call_id``."""
        if result.call_id != call.call_id:
            raise ValueError(f"result call_id {result.call_id!r} does not match call {call.call_id!r}")
        self.items.append(call.echo())
        self.items.append(result.to_item())

    def outstanding_call_ids(self) -> set[str]:
        issued = [item["call_id"] for item in self.items if item.get("type") == FUNCTION_CALL]
        answered = {item["call_id"] for item in self.items if item.get("type") == FUNCTION_CALL_OUTPUT}
        return {call_id for call_id in issued if call_id not in answered}

    def to_input(self) -> list[dict[str, Any]]:
        return [
            {"type": MESSAGE, "role": "system", "content": self.instructions},
            {"type": MESSAGE, "role": "user", "content": self.context_block},
            *self.items,
        ]

    def to_payload(self, model: str) -> dict[str, Any]:
        return {
            "model": model,
            "input": self.to_input(),
            "tools": list(self.tools),
            "parallel_tool_calls": False,
        }


class SupervisorResponse(BaseModel):
    """Either ``error`` is set, or ``output`` carries the decoded items."""

    output: list[OutputItem] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def failure(cls, reason: str = TRANSPORT_FAILURE) -> "SupervisorResponse":
        return cls(error=reason)

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def function_calls(self) -> list[ToolCallRequest]:
        return [item for item in self.output if isinstance(item, ToolCallRequest)]

    @property
    def messages(self) -> list[OutputMessage]:
        return [item for item in self.output if isinstance(item, OutputMessage)]

    def final_text(self) -> str:
        return "\n".join(message.text for message in self.messages)
