"""
Supervisor tools — schema catalog, argument decoding and dispatch.

Single public surface:
    ``ToolExecutor(knowledge).decode_arguments(name, raw)`` → validated args dict
    ``ToolExecutor(knowledge).execute(name, args)``         → JSON-serialisable result
    ``tool_catalog()``                                      → Responses API tool schemas

Dispatch is over the closed ``ToolName`` enum. A name outside the enum is
answered with ``UNKNOWN_TOOL_RESULT`` so the delegation loop is never blocked
by a tool it does not know.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Callable, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .knowledge import KnowledgeProvider

logger = logging.getLogger(__name__)

UNKNOWN_TOOL_RESULT: dict[str, Any] = {"result": True}


class ToolArgumentsError(ValueError):
    """A tool call's argument payload could not be decoded or validated."""

    def __init__(self, tool_name: str, reason: str) -> None:
        super().__init__(f"{tool_name}: {reason}")
        self.tool_name = tool_name
        self.reason = reason


class ToolName(str, Enum):
    LOOKUP_AI_SOLUTIONS = "lookupAISolutions"
    GET_BUSINESS_REQUIREMENTS = "getBusinessRequirements"
    FIND_IMPLEMENTATION_PATH = "findImplementationPath"

    @classmethod
    def parse(cls, name: str) -> "ToolName | None":
        try:
            return cls(name)
        except ValueError:
            return None


# ── argument models ─────────────────────────────────────────────────────────


class ToolArguments(BaseModel):
    """Base for per-tool arguments. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class LookupAISolutionsArgs(ToolArguments):
    topic: str | None = Field(
        default=None,
        description=(
            "The AI solution topic, use case, or industry to search for "
            "(e.g., 'customer service', 'data analysis', 'process automation')."
        ),
    )


class GetBusinessRequirementsArgs(ToolArguments):
    business_context: str | None = Field(
        default=None,
        description=(
            "Description of the business domain, industry, or specific challenges. MUST be provided by the user."
        ),
    )


class FindImplementationPathArgs(ToolArguments):
    solution_type: str | None = Field(
        default=None,
        description="The type of AI solution needed (e.g., 'conversational AI', 'automation', 'analytics').",
    )


_ARGUMENT_MODELS: dict[ToolName, type[ToolArguments]] = {
    ToolName.LOOKUP_AI_SOLUTIONS: LookupAISolutionsArgs,
    ToolName.GET_BUSINESS_REQUIREMENTS: GetBusinessRequirementsArgs,
    ToolName.FIND_IMPLEMENTATION_PATH: FindImplementationPathArgs,
}

_DESCRIPTIONS: dict[ToolName, str] = {
    ToolName.LOOKUP_AI_SOLUTIONS: (
        "Tool to look up information about Cocoa AI's solutions, services, and implementation "
        "strategies by topic or keyword."
    ),
    ToolName.GET_BUSINESS_REQUIREMENTS: (
        "Tool to gather and analyze business requirements for AI implementation. This helps understand "
        "the client's current state and challenges."
    ),
    ToolName.FIND_IMPLEMENTATION_PATH: (
        "Tool to determine the recommended implementation approach and timeline for AI solutions based "
        "on business needs."
    ),
}


def tool_schema(tool: ToolName) -> dict[str, Any]:
    """Strict function schema: every field a required string, nothing else allowed."""
    fields = _ARGUMENT_MODELS[tool].model_fields
    return {
        "type": "function",
        "name": tool.value,
        "description": _DESCRIPTIONS[tool],
        "parameters": {
            "type": "object",
            "properties": {
                name: {"type": "string", "description": field.description or ""} for name, field in fields.items()
            },
            "required": list(fields),
            "additionalProperties": False,
        },
    }


def tool_catalog() -> list[dict[str, Any]]:
    return [tool_schema(tool) for tool in ToolName]


# ── handlers ────────────────────────────────────────────────────────────────


def _text_arg(args: Mapping[str, Any], key: str) -> str | None:
    value = args.get(key)
    return value if isinstance(value, str) and value else None


def _lookup_ai_solutions(knowledge: KnowledgeProvider, args: Mapping[str, Any]) -> Any:
    return [sol.model_dump(mode="json") for sol in knowledge.find_solutions(_text_arg(args, "topic"))]


def _get_business_requirements(knowledge: KnowledgeProvider, args: Mapping[str, Any]) -> Any:
    return knowledge.get_requirements_profile().model_dump(mode="json")


def _find_implementation_path(knowledge: KnowledgeProvider, args: Mapping[str, Any]) -> Any:
    return knowledge.find_implementation_path(_text_arg(args, "solution_type")).model_dump(mode="json")


_HANDLERS: dict[ToolName, Callable[[KnowledgeProvider, Mapping[str, Any]], Any]] = {
    ToolName.LOOKUP_AI_SOLUTIONS: _lookup_ai_solutions,
    ToolName.GET_BUSINESS_REQUIREMENTS: _get_business_requirements,
    ToolName.FIND_IMPLEMENTATION_PATH: _find_implementation_path,
}


class ToolExecutor:
    """Resolves supervisor tool calls against a ``KnowledgeProvider``."""

    def __init__(self, knowledge: KnowledgeProvider) -> None:
        self._knowledge = knowledge

    def decode_arguments(self, name: str, raw: str | None) -> dict[str, Any]:
        """Decode a raw JSON argument payload and validate it for ``name``.

        Empty payloads decode to ``{}``. Arguments of unknown tools are never
        rejected; anything that is not a JSON object decodes to ``{}``.
        """
        tool = ToolName.parse(name)
        try:
            decoded = json.loads(raw) if raw and raw.strip() else {}
        except json.JSONDecodeError as exc:
            if tool is None:
                logger.warning("Ignoring undecodable arguments for unknown tool %r", name)
                return {}
            raise ToolArgumentsError(name, f"arguments are not valid JSON ({exc.msg})") from exc
        if not isinstance(decoded, dict):
            if tool is None:
                return {}
            raise ToolArgumentsError(name, "arguments must be a JSON object")
        if tool is None:
            return decoded
        try:
            return _ARGUMENT_MODELS[tool].model_validate(decoded).model_dump(exclude_none=True)
        except ValidationError as exc:
            raise ToolArgumentsError(name, f"arguments do not match schema ({exc.error_count()} errors)") from exc

    def execute(self, name: str, args: Mapping[str, Any] | None = None) -> Any:
        tool = ToolName.parse(name)
        if tool is None:
            logger.warning("Unknown supervisor tool %r, answering with success sentinel", name)
            return dict(UNKNOWN_TOOL_RESULT)
        return _HANDLERS[tool](self._knowledge, args or {})
