"""Core package — public API."""

from .engine import DelegationLoop, DelegationOutcome, LoopState
from .inference import SupervisorClient, build_supervisor_client
from .knowledge import KnowledgeProvider, StaticKnowledgeBase, load_knowledge_base
from .schemas.items import (
    ConversationItem,
    SupervisorRequest,
    SupervisorResponse,
    ToolCallRequest,
    ToolCallResult,
)
from .tools import ToolArgumentsError, ToolExecutor, ToolName, tool_catalog

__all__ = [
    "DelegationLoop",
    "DelegationOutcome",
    "LoopState",
    "SupervisorClient",
    "build_supervisor_client",
    "KnowledgeProvider",
    "StaticKnowledgeBase",
    "load_knowledge_base",
    "ConversationItem",
    "SupervisorRequest",
    "SupervisorResponse",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolArgumentsError",
    "ToolExecutor",
    "ToolName",
    "tool_catalog",
]
