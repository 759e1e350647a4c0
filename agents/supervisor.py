"""
Supervisor Agent — the front agent's only tool, backed by the delegation loop.

``getNextResponseFromSupervisor(relevantContextFromLastUserMessage)`` returns
``{"nextResponse": text}`` or ``{"error": "Something went wrong."}``.

Module-level ``supervisor`` is populated by ``build_supervisor()``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.config import Settings, get_settings
from core.engine import Breadcrumb, DelegationLoop
from core.inference import build_supervisor_client
from core.knowledge import KnowledgeProvider, load_knowledge_base
from core.logging_core import log_info, log_warning
from core.schemas.items import ConversationItem
from core.tools import ToolExecutor

TOOL_NAME = "getNextResponseFromSupervisor"
GENERIC_ERROR = "Something went wrong."

_PROMPTS_DIR = Path(__file__).parent / "prompts"


def load_prompt(name: str, *, company: str | None = None) -> str:
    """Read ``agents/prompts/{name}.md`` and fill in the company name."""
    text = (_PROMPTS_DIR / f"{name}.md").read_text(encoding="utf-8").strip()
    return text.replace("{company}", company or get_settings().company_name)


class SupervisorToolArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    relevant_context: str = Field(
        default="",
        alias="relevantContextFromLastUserMessage",
        description=(
            "Key information from the user described in their most recent message. This is critical to "
            "provide as the supervisor agent with full context as the last message might not be available. "
            "Okay to omit if the user message didn't add any new information."
        ),
    )


def supervisor_tool_schema() -> dict[str, Any]:
    """Realtime function-tool schema for the front agent."""
    field = SupervisorToolArgs.model_fields["relevant_context"]
    return {
        "type": "function",
        "name": TOOL_NAME,
        "description": (
            "Determines the next response whenever the agent faces a non-trivial decision, produced by a "
            "highly intelligent supervisor agent. Returns a message describing what to do next."
        ),
        "parameters": {
            "type": "object",
            "properties": {field.alias: {"type": "string", "description": field.description}},
            "required": [field.alias],
            "additionalProperties": False,
        },
    }


class SupervisorAgent(BaseModel):
    """Stateless facade: every call seeds its own request inside ``loop``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = "supervisorAgent"
    loop: DelegationLoop

    async def get_next_response(
        self,
        relevant_context: str = "",
        history: list[ConversationItem] | None = None,
        *,
        breadcrumb: Breadcrumb | None = None,
    ) -> dict[str, str]:
        outcome = await self.loop.run(list(history or []), relevant_context, breadcrumb=breadcrumb)
        if not outcome.ok:
            return {"error": GENERIC_ERROR}
        return {"nextResponse": outcome.text}

    async def invoke_tool(
        self,
        arguments: dict[str, Any] | str | None,
        history: list[ConversationItem] | None = None,
        *,
        breadcrumb: Breadcrumb | None = None,
    ) -> dict[str, str]:
        """Entry point for a raw realtime tool call (arguments as dict or JSON string)."""
        try:
            if isinstance(arguments, str):
                args = SupervisorToolArgs.model_validate_json(arguments or "{}")
            else:
                args = SupervisorToolArgs.model_validate(arguments or {})
        except ValidationError as exc:
            log_warning(__name__, "Rejected %s arguments: %s", TOOL_NAME, exc.error_count())
            return {"error": GENERIC_ERROR}
        return await self.get_next_response(args.relevant_context, history, breadcrumb=breadcrumb)


# Module-level singleton, populated by ``build_supervisor()``
supervisor: SupervisorAgent | None = None


def build_supervisor(
    settings: Settings | None = None,
    *,
    knowledge: KnowledgeProvider | None = None,
    client: Any = None,
) -> SupervisorAgent:
    """Build (or rebuild) the supervisor with its knowledge base and client."""
    global supervisor

    settings = settings or get_settings()
    knowledge = knowledge or load_knowledge_base(settings.knowledge_base_path)
    supervisor = SupervisorAgent(
        loop=DelegationLoop(
            instructions=load_prompt("supervisor", company=settings.company_name),
            client=client or build_supervisor_client(settings),
            executor=ToolExecutor(knowledge),
            max_rounds=settings.supervisor_max_rounds,
        )
    )
    log_info(__name__, "Supervisor built (model=%s, max_rounds=%d)", settings.supervisor_model, settings.supervisor_max_rounds)
    return supervisor


def get_supervisor() -> SupervisorAgent:
    return supervisor if supervisor is not None else build_supervisor()
