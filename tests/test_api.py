"""tests/test_api.py

HTTP routes and the session WebSocket, driven through ``TestClient`` with the
supervisor and avatar vendor swapped for scripted doubles.
"""

from __future__ import annotations

import httpx
import pytest
from conftest import function_call, message, response
from fastapi.testclient import TestClient

from agents.supervisor import SupervisorAgent, get_supervisor
from app.main import app, get_avatar_vendor
from core.avatar_vendor import HeyGenClient


def _vendor_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/v1/streaming.create_token":
        return httpx.Response(200, json={"data": {"token": "tok_abc"}})
    if request.url.path == "/v1/streaming.avatar.list":
        return httpx.Response(200, json={"data": [{"avatar_id": "Anna_public", "pose_name": "Anna"}]})
    return httpx.Response(404)


@pytest.fixture
def wire(make_loop):
    """Install dependency overrides; returns a setter for the supervisor script and vendor."""
    state: dict = {}

    def _wire(*responses, api_key: str | None = "hg-test", handler=_vendor_handler):
        loop, client = make_loop(*responses)
        vendor = HeyGenClient(api_key=api_key, base_url="https://heygen.test", transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_supervisor] = lambda: SupervisorAgent(loop=loop)
        app.dependency_overrides[get_avatar_vendor] = lambda: vendor
        state["client"] = client
        return client

    yield _wire
    app.dependency_overrides.clear()


def _drain_turn(ws) -> list[dict]:
    """Collect messages until the turn reports ``done``."""
    received: list[dict] = []
    while True:
        msg = ws.receive_json()
        received.append(msg)
        if msg["type"] == "status" and msg["data"]["status"] == "done":
            return received


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


class TestVendorProxy:
    def test_token(self, wire) -> None:
        wire()
        with TestClient(app) as client:
            res = client.post("/api/token")
        assert res.status_code == 200
        assert res.json() == {"token": "tok_abc"}

    def test_avatars(self, wire) -> None:
        wire()
        with TestClient(app) as client:
            res = client.get("/api/avatars")
        assert res.status_code == 200
        assert res.json() == {"data": [{"avatar_id": "Anna_public", "pose_name": "Anna"}]}

    def test_missing_key(self, wire) -> None:
        wire(api_key=None)
        with TestClient(app) as client:
            res = client.post("/api/token")
        assert res.status_code == 500
        assert res.json()["error_code"] == "configuration_error"

    def test_vendor_status_propagates(self, wire) -> None:
        wire(handler=lambda r: httpx.Response(403, text="forbidden"))
        with TestClient(app) as client:
            res = client.get("/api/avatars")
        assert res.status_code == 403
        assert res.json() == {"error": "Failed to fetch avatars", "error_code": "vendor_error"}


class TestSupervisorRoute:
    def test_next_response(self, wire) -> None:
        scripted = wire(
            response(function_call("c1", "lookupAISolutions", {"topic": "customer service"})),
            response(message("See [Conversational AI Solutions](ID-010).")),
        )
        body = {
            "relevantContextFromLastUserMessage": "Wants to know about Cocoa AI's solutions",
            "history": [{"type": "message", "role": "user", "content": [{"type": "input_text", "text": "Hi"}]}],
        }
        with TestClient(app) as client:
            res = client.post("/api/supervisor", json=body)
        assert res.status_code == 200
        assert res.json() == {"nextResponse": "See [Conversational AI Solutions](ID-010)."}
        assert scripted.calls == 2

    def test_failure(self, wire) -> None:
        from core.schemas.items import SupervisorResponse

        wire(SupervisorResponse.failure())
        with TestClient(app) as client:
            res = client.post("/api/supervisor", json={"relevantContextFromLastUserMessage": ""})
        assert res.json() == {"error": "Something went wrong."}


def test_front_agent_config(wire) -> None:
    wire()
    with TestClient(app) as client:
        config = client.get("/api/front-agent").json()
    assert config["name"] == "chatAgent"
    assert config["voice"] == "sage"
    assert [tool["name"] for tool in config["tools"]] == ["getNextResponseFromSupervisor"]


def test_state(wire) -> None:
    wire()
    with TestClient(app) as client:
        state = client.get("/api/state").json()
    assert "events" in state
    assert "observability_events" in state


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


class TestWebSocket:
    def test_greeting_is_answered_without_supervisor(self, wire) -> None:
        scripted = wire()
        with TestClient(app) as client, client.websocket_connect("/ws?session=s-greet") as ws:
            assert ws.receive_json()["type"] == "state_sync"
            ws.send_json({"type": "text", "text": "Hello"})
            messages = _drain_turn(ws)

        replies = [m["data"] for m in messages if m["type"] == "chat_response"]
        assert replies == [
            {
                "content": "Hi, I'm Mario from Cocoa AI. How can I help you with your AI needs today?",
                "agent": "chatAgent",
                "kind": "reply",
            }
        ]
        assert scripted.calls == 0

    def test_delegated_turn(self, wire) -> None:
        answer = "We offer [Conversational AI Solutions](ID-010)."
        wire(
            response(function_call("c1", "lookupAISolutions", {"topic": "customer service"})),
            response(message(answer)),
        )
        with TestClient(app) as client, client.websocket_connect("/ws?session=s-delegate") as ws:
            ws.receive_json()
            ws.send_json(
                {
                    "type": "text",
                    "text": "What can you do for customer service?",
                    "relevant_context": "Wants to know about Cocoa AI's solutions",
                }
            )
            messages = _drain_turn(ws)

        kinds = [m["data"]["kind"] for m in messages if m["type"] == "chat_response"]
        assert kinds == ["filler", "reply"]
        reply = [m for m in messages if m["type"] == "chat_response"][-1]
        assert reply["data"]["content"] == answer

        steps = [m["data"]["title"] for m in messages if m["type"] == "step"]
        assert steps == [
            "[supervisorAgent] function call: lookupAISolutions",
            "[supervisorAgent] function call result: lookupAISolutions",
        ]
        # Breadcrumbs reach the client before the reply.
        last_step = max(i for i, m in enumerate(messages) if m["type"] == "step")
        assert messages.index(reply) > last_step

        spoken = [m["data"] for m in messages if m["type"] == "avatar"]
        assert [item["action"] for item in spoken] == ["speak", "speak"]
        assert spoken[-1] == {"action": "speak", "text": answer, "task_type": "repeat"}

    def test_invalid_event(self, wire) -> None:
        wire()
        with TestClient(app) as client, client.websocket_connect("/ws?session=s-bad") as ws:
            ws.receive_json()
            ws.send_text('{"type": "telepathy"}')
            assert ws.receive_json()["type"] == "error"

    def test_avatar_commands(self, wire) -> None:
        wire()
        with TestClient(app) as client, client.websocket_connect("/ws?session=s-avatar") as ws:
            ws.receive_json()
            ws.send_json({"type": "system", "command": "start"})
            assert ws.receive_json()["data"] == {"action": "start", "token": "tok_abc"}
            ws.send_json({"type": "system", "command": "interrupt"})
            assert ws.receive_json()["data"] == {"action": "interrupt"}
            ws.send_json({"type": "system", "command": "stop"})
            assert ws.receive_json()["data"] == {"action": "stop"}

    def test_clear(self, wire) -> None:
        wire()
        with TestClient(app) as client, client.websocket_connect("/ws?session=s-clear") as ws:
            ws.receive_json()
            ws.send_json({"type": "text", "text": "hi"})
            _drain_turn(ws)
            ws.send_json({"type": "system", "command": "clear"})
            status = ws.receive_json()
            assert status["data"]["status"] == "cleared"
            state = client.get("/api/state", params={"session": "s-clear"}).json()
        assert state["session"]["messages"] == []


class TestParameterCollection:
    def test_prompt_is_spoken_without_supervisor(self, wire) -> None:
        scripted = wire()
        with TestClient(app) as client, client.websocket_connect("/ws?session=s-collect") as ws:
            ws.receive_json()
            ws.send_json({"type": "collect", "tool": "getBusinessRequirements", "field": "business_context"})
            reply = ws.receive_json()
            spoken = ws.receive_json()
            # The handler is sequential, so the reply is recorded once the next event is answered.
            ws.send_text('{"type": "telepathy"}')
            assert ws.receive_json()["type"] == "error"
            state = client.get("/api/state", params={"session": "s-collect"}).json()

        assert reply["type"] == "chat_response"
        assert reply["data"]["kind"] == "reply"
        assert "business context" in reply["data"]["content"]
        assert spoken["data"] == {"action": "speak", "text": reply["data"]["content"], "task_type": "repeat"}
        assert state["session"]["messages"][-1]["text"] == reply["data"]["content"]
        assert scripted.calls == 0

    def test_unknown_parameter_is_an_error(self, wire) -> None:
        wire()
        with TestClient(app) as client, client.websocket_connect("/ws?session=s-collect-bad") as ws:
            ws.receive_json()
            ws.send_json({"type": "collect", "tool": "lookupAISolutions", "field": "industry"})
            assert ws.receive_json()["type"] == "error"
