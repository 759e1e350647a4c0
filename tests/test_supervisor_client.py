"""tests/test_supervisor_client.py

``SupervisorClient`` against a mocked Responses API transport.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from core.inference import SupervisorClient, build_supervisor_client
from core.schemas.items import TRANSPORT_FAILURE, SupervisorRequest, ToolCallRequest, ToolCallResult

_BASE_URL = "http://supervisor.test/v1"


def _client(handler) -> SupervisorClient:
    return SupervisorClient(
        model="gpt-4.1",
        base_url=_BASE_URL,
        api_key="sk-test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _request() -> SupervisorRequest:
    return SupervisorRequest(
        instructions="system prompt",
        context_block="context",
        tools=[{"type": "function", "name": "lookupAISolutions", "parameters": {}}],
    )


class TestSend:
    def test_decodes_messages_and_calls(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "id": "resp_1",
                    "object": "response",
                    "output": [
                        {
                            "type": "message",
                            "id": "msg_1",
                            "role": "assistant",
                            "status": "completed",
                            "content": [{"type": "output_text", "text": "Checking.", "annotations": []}],
                        },
                        {
                            "type": "function_call",
                            "id": "fc_1",
                            "call_id": "call_1",
                            "name": "lookupAISolutions",
                            "arguments": '{"topic":"customer service"}',
                        },
                    ],
                },
            )

        result = asyncio.run(_client(handler).send(_request()))

        assert not result.failed
        assert result.final_text() == "Checking."
        assert [(call.call_id, call.name) for call in result.function_calls] == [("call_1", "lookupAISolutions")]
        body = seen[0]
        assert body["model"] == "gpt-4.1"
        assert body["parallel_tool_calls"] is False
        assert body["input"][0] == {"type": "message", "role": "system", "content": "system prompt"}
        assert body["tools"][0]["name"] == "lookupAISolutions"

    def test_resends_full_accumulator(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"output": []})

        request = _request()
        call = ToolCallRequest(call_id="call_1", name="lookupAISolutions", arguments="{}")
        request.append_exchange(call, ToolCallResult(call_id="call_1", output=[{"id": "ID-010"}]))
        asyncio.run(_client(handler).send(request))

        items = seen[0]["input"][2:]
        assert [item["type"] for item in items] == ["function_call", "function_call_output"]
        assert json.loads(items[1]["output"]) == [{"id": "ID-010"}]

    @pytest.mark.parametrize(
        "handler",
        [
            lambda request: httpx.Response(500, json={"error": {"message": "boom"}}),
            lambda request: httpx.Response(401, json={"error": {"message": "bad key"}}),
            lambda request: httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"}),
            lambda request: httpx.Response(200, json={"error": {"message": "model overloaded"}, "output": []}),
            lambda request: httpx.Response(200, json={"output": [{"type": "function_call", "name": "x"}]}),
        ],
        ids=["server-error", "unauthorized", "invalid-json", "error-marker", "malformed-item"],
    )
    def test_failures_collapse_to_transport_failure(self, handler) -> None:
        result = asyncio.run(_client(handler).send(_request()))
        assert result.failed
        assert result.error == TRANSPORT_FAILURE
        assert result.output == []

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = asyncio.run(_client(handler).send(_request()))
        assert result.failed

    def test_single_attempt(self) -> None:
        attempts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            return httpx.Response(503, json={"error": {"message": "unavailable"}})

        asyncio.run(_client(handler).send(_request()))
        assert len(attempts) == 1

    def test_refuses_unresolved_calls(self) -> None:
        request = _request()
        request.items.append(ToolCallRequest(call_id="call_9", name="lookupAISolutions").echo())
        with pytest.raises(ValueError):
            asyncio.run(_client(lambda r: httpx.Response(200, json={"output": []})).send(request))


def test_build_from_settings(monkeypatch) -> None:
    from core.config import get_settings

    monkeypatch.setenv("SUPERVISOR_MODEL", "gpt-4.1-mini")
    monkeypatch.setenv("SUPERVISOR_TIMEOUT_S", "12.5")
    get_settings.cache_clear()
    client = build_supervisor_client()
    assert client.model == "gpt-4.1-mini"
    assert client.timeout_s == 12.5


class TestNullFields:
    def test_null_message_content_is_empty_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "id": "resp_1",
                    "object": "response",
                    "output": [{"type": "message", "id": "msg_1", "role": "assistant", "content": None}],
                },
            )

        result = asyncio.run(_client(handler).send(_request()))

        assert not result.failed
        assert result.final_text() == ""

    def test_null_arguments_become_empty_object(self) -> None:
        result = SupervisorClient._decode(
            {"output": [{"type": "function_call", "call_id": "call_1", "name": "lookupAISolutions", "arguments": None}]}
        )

        assert not result.failed
        [call] = result.function_calls
        assert call.arguments == "{}"
        assert call.echo()["arguments"] == "{}"

    def test_missing_arguments_default_to_empty_object(self) -> None:
        assert ToolCallRequest(call_id="c1", name="lookupAISolutions").arguments == "{}"
