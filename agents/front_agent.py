"""
Front Agent — the user-facing voice persona and its allow-list policy.

The front agent answers only a narrow allow-list itself (greetings, small
talk, requests to repeat, asking for missing tool parameters). Every other
utterance is delegated to the supervisor, and each delegation is preceded by
exactly one neutral filler utterance that masks the round-trip latency.
"""

from __future__ import annotations

import inspect
import re
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from core.config import get_settings
from core.engine import Breadcrumb
from core.logging_core import log_info, log_warning
from core.schemas.items import ConversationItem
from core.tools import ToolName, tool_catalog

from .supervisor import GENERIC_ERROR, TOOL_NAME, load_prompt, supervisor_tool_schema

# speak(text, kind) where kind is "filler" or "reply".
Speaker = Callable[[str, str], Awaitable[None] | None]

FILLER_PHRASES: tuple[str, ...] = (
    "Just a second.",
    "Let me check.",
    "One moment.",
    "Let me look into that.",
    "Give me a moment.",
    "Let me see.",
)

ESCALATION_REPLY = (
    "I'm sorry, I wasn't able to get that information just now. "
    "Would you like me to connect you with one of our senior AI consultants?"
)


class InteractionCategory(str, Enum):
    GREETING = "greeting"
    CHITCHAT = "chitchat"
    REPEAT = "repeat"
    COLLECT_PARAMETERS = "collect_parameters"
    DELEGATE = "delegate"


ALLOW_LIST = frozenset(
    {
        InteractionCategory.GREETING,
        InteractionCategory.CHITCHAT,
        InteractionCategory.REPEAT,
        InteractionCategory.COLLECT_PARAMETERS,
    }
)

# Whole-utterance patterns; anything with extra content falls through to DELEGATE.
_PATTERNS: tuple[tuple[InteractionCategory, re.Pattern[str]], ...] = (
    (
        InteractionCategory.GREETING,
        re.compile(r"(hi|hello|hey|hiya|howdy|good (morning|afternoon|evening))( there)?( mario)?"),
    ),
    (
        InteractionCategory.CHITCHAT,
        re.compile(
            r"(how are you( doing)?( today)?|how's it going|"
            r"(thanks|thank you)( so much| very much| a lot)?( mario)?|"
            r"(ok|okay|great|cool|perfect|got it)( thanks| thank you)?|"
            r"(bye|goodbye|see you|have a (good|nice) day))"
        ),
    ),
    (
        InteractionCategory.REPEAT,
        re.compile(
            r"((can|could|would) you (please )?(repeat|say) (that|it)( again)?( please)?|"
            r"(please )?repeat (that|it)( please)?|say (that|it) again( please)?|"
            r"what did you (just )?say|(sorry |pardon )?(what|pardon|come again))"
        ),
    ),
)


class PolicyViolation(RuntimeError):
    """A front-agent turn broke the allow-list / filler contract."""


class FrontTurn(BaseModel):
    """What the front agent did with one user utterance."""

    utterance: str
    category: InteractionCategory
    fillers: list[str] = Field(default_factory=list)
    delegated: bool = False
    relevant_context: str | None = None
    reply: str = ""
    error: str | None = None

    @property
    def filler(self) -> str | None:
        return self.fillers[0] if self.fillers else None


def _normalize(utterance: str) -> str:
    text = re.sub(r"[^\w\s']", " ", utterance.lower())
    return " ".join(text.split())


class FrontAgentPolicy:
    """Classification contract for the front agent."""

    def __init__(self, fillers: tuple[str, ...] = FILLER_PHRASES) -> None:
        if not fillers:
            raise ValueError("at least one filler phrase is required")
        self._fillers = fillers
        self._next_filler = 0
        self._last_filler: str | None = None

    def classify(self, utterance: str) -> InteractionCategory:
        text = _normalize(utterance)
        if not text:
            return InteractionCategory.REPEAT
        for category, pattern in _PATTERNS:
            if pattern.fullmatch(text):
                return category
        return InteractionCategory.DELEGATE

    @staticmethod
    def is_allow_listed(category: InteractionCategory) -> bool:
        return category in ALLOW_LIST

    def pick_filler(self) -> str:
        """Next filler phrase; never the same one twice in a row."""
        phrase = self._fillers[self._next_filler % len(self._fillers)]
        self._next_filler += 1
        if phrase == self._last_filler and len(self._fillers) > 1:
            phrase = self._fillers[self._next_filler % len(self._fillers)]
            self._next_filler += 1
        self._last_filler = phrase
        return phrase

    def check_turn(self, turn: FrontTurn) -> None:
        if self.is_allow_listed(turn.category):
            if turn.fillers or turn.delegated:
                raise PolicyViolation(f"allow-listed {turn.category.value} turn must be answered directly")
            return
        if not turn.delegated:
            raise PolicyViolation("non-allow-listed utterance was answered without delegation")
        if len(turn.fillers) != 1:
            raise PolicyViolation(f"delegation requires exactly one filler utterance, got {len(turn.fillers)}")


# ═════════════════════════════════════════════════════════════════════════════
# FrontAgent
# ═════════════════════════════════════════════════════════════════════════════


class FrontAgent(BaseModel):
    """Per-session front agent. ``supervisor`` exposes ``get_next_response``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = "chatAgent"
    voice: str = "sage"
    company: str = Field(default_factory=lambda: get_settings().company_name)
    supervisor: Any

    _policy: FrontAgentPolicy = PrivateAttr(default_factory=FrontAgentPolicy)
    _greeted: bool = PrivateAttr(default=False)
    _last_reply: str = PrivateAttr(default="")

    @property
    def policy(self) -> FrontAgentPolicy:
        return self._policy

    @property
    def introduction(self) -> str:
        return f"Hi, I'm Mario from {self.company}. How can I help you with your AI needs today?"

    # ── realtime surface ─────────────────────────────────────────────────

    def session_config(self) -> dict[str, Any]:
        """Realtime session description. Only the supervisor tool is exposed."""
        return {
            "name": self.name,
            "voice": self.voice,
            "instructions": load_prompt("front_agent", company=self.company),
            "tools": [supervisor_tool_schema()],
        }

    async def handle_tool_call(
        self,
        name: str,
        arguments: dict[str, Any] | str | None,
        history: list[ConversationItem] | None = None,
        *,
        breadcrumb: Breadcrumb | None = None,
    ) -> dict[str, str]:
        if name != TOOL_NAME:
            log_warning(__name__, "Front agent attempted to call %r directly", name)
            return {"error": f"{name} is not available to the front agent"}
        return await self.supervisor.invoke_tool(arguments, history, breadcrumb=breadcrumb)

    # ── allow-listed replies ─────────────────────────────────────────────

    def _direct_reply(self, category: InteractionCategory, utterance: str) -> str:
        if category is InteractionCategory.GREETING:
            if not self._greeted:
                return self.introduction
            return "Hi there!" if self._last_reply == "Hello!" else "Hello!"
        if category is InteractionCategory.REPEAT:
            return self._last_reply or "I haven't shared anything yet. How can I help you with your AI needs?"
        text = _normalize(utterance)
        if text.startswith(("thank", "thanks")):
            return "You're welcome! Is there anything else I can help you with today?"
        if text.startswith(("how are", "how's")):
            return "I'm doing well, thanks for asking. How can I help with your AI needs?"
        if text.startswith(("bye", "goodbye", "see you", "have a")):
            return f"Thanks for talking with {self.company}. Have a great day!"
        return "Great. What else would you like to know?"

    def request_parameter(self, tool: ToolName | str, field: str) -> str:
        """Allow-listed prompt asking the user for a supervisor tool parameter."""
        tool_name = ToolName(tool).value
        schema = next(entry for entry in tool_catalog() if entry["name"] == tool_name)
        if field not in schema["parameters"]["properties"]:
            raise ValueError(f"{tool_name} has no parameter {field!r}")
        label = field.replace("_", " ")
        return f"To give you the most relevant information, could you tell me a bit more about your {label}?"

    # ── turn handling ────────────────────────────────────────────────────

    @staticmethod
    async def _say(speak: Speaker | None, text: str, kind: str) -> None:
        if speak is None:
            return
        result = speak(text, kind)
        if inspect.isawaitable(result):
            await result

    async def handle_turn(
        self,
        utterance: str,
        history: list[ConversationItem] | None = None,
        *,
        relevant_context: str | None = None,
        speak: Speaker | None = None,
        breadcrumb: Breadcrumb | None = None,
    ) -> FrontTurn:
        """Answer an allow-listed utterance, or filler + delegate + relay verbatim."""
        category = self._policy.classify(utterance)
        turn = FrontTurn(utterance=utterance, category=category)

        if self._policy.is_allow_listed(category):
            turn.reply = self._direct_reply(category, utterance)
        else:
            filler = self._policy.pick_filler()
            turn.fillers.append(filler)
            await self._say(speak, filler, "filler")

            turn.delegated = True
            turn.relevant_context = utterance.strip() if relevant_context is None else relevant_context
            log_info(__name__, "Delegating to supervisor", meta={"context": turn.relevant_context})
            result = await self.supervisor.get_next_response(
                turn.relevant_context,
                list(history or []),
                breadcrumb=breadcrumb,
            )
            if "nextResponse" in result:
                turn.reply = result["nextResponse"]
            else:
                turn.error = result.get("error") or GENERIC_ERROR
                turn.reply = ESCALATION_REPLY

        return await self._finish(turn, speak)

    async def handle_parameter_request(
        self,
        tool: ToolName | str,
        field: str,
        *,
        speak: Speaker | None = None,
    ) -> FrontTurn:
        """Allow-listed turn that asks the user for one missing tool parameter.

        Raises ``ValueError`` when ``tool`` or ``field`` is not in the catalog.
        """
        prompt = self.request_parameter(tool, field)
        turn = FrontTurn(utterance="", category=InteractionCategory.COLLECT_PARAMETERS, reply=prompt)
        return await self._finish(turn, speak)

    async def _finish(self, turn: FrontTurn, speak: Speaker | None) -> FrontTurn:
        self._policy.check_turn(turn)
        self._greeted = True
        self._last_reply = turn.reply
        await self._say(speak, turn.reply, "reply")
        return turn
