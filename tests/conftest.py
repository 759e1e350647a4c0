"""tests/conftest.py

Shared fixtures: an isolated observability log, fresh settings, the bundled
knowledge base and a scripted supervisor client that replays canned responses.
"""

from __future__ import annotations

import copy
import json
from typing import Any

import pytest

from core.config import get_settings
from core.engine import DelegationLoop
from core.knowledge import StaticKnowledgeBase, load_knowledge_base
from core.schemas.items import SupervisorRequest, SupervisorResponse, parse_output_items
from core.tools import ToolExecutor


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep traces out of the repo and rebuild settings per test."""
    monkeypatch.setenv("OBSERVABILITY_LOG_PATH", str(tmp_path / "observability.jsonl"))
    for name in ("OPENAI_API_KEY", "HEYGEN_API_KEY", "SUPERVISOR_MAX_ROUNDS", "SUPERVISOR_TIMEOUT_S", "COMPANY_NAME"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Supervisor output builders
# ---------------------------------------------------------------------------


def message(*texts: str) -> dict[str, Any]:
    return {
        "type": "message",
        "role": "assistant",
        "content": [{"type": "output_text", "text": text} for text in texts],
    }


def function_call(call_id: str, name: str, arguments: Any = None) -> dict[str, Any]:
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments or {})
    return {"type": "function_call", "call_id": call_id, "name": name, "arguments": raw}


def response(*items: dict[str, Any]) -> SupervisorResponse:
    return SupervisorResponse(output=parse_output_items(list(items)))


class ScriptedClient:
    """Replays one ``SupervisorResponse`` per ``send`` and snapshots every request."""

    def __init__(self, *responses: SupervisorResponse) -> None:
        self._responses = list(responses)
        self.requests: list[dict[str, Any]] = []

    async def send(self, request: SupervisorRequest) -> SupervisorResponse:
        self.requests.append(copy.deepcopy(request.to_payload("test-model")))
        if not self._responses:
            raise AssertionError("ScriptedClient ran out of responses")
        return self._responses.pop(0)

    @property
    def calls(self) -> int:
        return len(self.requests)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def knowledge() -> StaticKnowledgeBase:
    return load_knowledge_base()


@pytest.fixture
def executor(knowledge: StaticKnowledgeBase) -> ToolExecutor:
    return ToolExecutor(knowledge)


@pytest.fixture
def make_loop(executor: ToolExecutor):
    """Factory: ``make_loop(*responses, max_rounds=8)`` → ``(loop, client)``."""

    def _make(*responses: SupervisorResponse, max_rounds: int = 8) -> tuple[DelegationLoop, ScriptedClient]:
        client = ScriptedClient(*responses)
        loop = DelegationLoop(
            instructions="You are a helpful supervisor.",
            client=client,
            executor=executor,
            max_rounds=max_rounds,
        )
        return loop, client

    return _make
