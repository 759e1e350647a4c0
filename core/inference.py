"""
Supervisor inference — one Responses API round-trip per ``send``.

Architecture:
    SupervisorClient     — AsyncOpenAI wrapper, single attempt, sequential tool calls
    build_supervisor_client(settings) — canonical factory from ``Settings``

Every failure (transport, non-2xx, malformed body, error marker) collapses to
``SupervisorResponse.failure()``; nothing is retried.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ConfigDict, PrivateAttr

from . import observability
from .config import Settings, get_settings
from .schemas.items import SupervisorRequest, SupervisorResponse, parse_output_items
from .utils import compact_reason

logger = logging.getLogger(__name__)


class SupervisorClient(BaseModel):
    """Completion endpoint client used by the delegation loop."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    model: str
    base_url: str | None = None
    api_key: str | None = None
    timeout_s: float = 30.0
    http_client: httpx.AsyncClient | None = None

    _client: AsyncOpenAI | None = PrivateAttr(default=None)

    def _get_client(self) -> AsyncOpenAI:
        # Built lazily so a missing key surfaces as a failed round-trip, not an import error.
        if self._client is None:
            kwargs: dict[str, Any] = {"timeout": self.timeout_s, "max_retries": 0}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.http_client is not None:
                kwargs["http_client"] = self.http_client
            self._client = AsyncOpenAI(**kwargs)
            logger.info("SupervisorClient initialized (model=%s, base_url=%s)", self.model, self.base_url or "default")
        return self._client

    @staticmethod
    def _decode(raw: Any) -> SupervisorResponse:
        data = raw.to_dict() if hasattr(raw, "to_dict") else raw
        if not isinstance(data, dict):
            raise ValueError(f"completion body is not a JSON object ({type(data).__name__})")
        if data.get("error"):
            raise ValueError(f"completion carried an error marker: {data['error']}")
        return SupervisorResponse(output=parse_output_items(data.get("output") or []))

    async def send(self, request: SupervisorRequest) -> SupervisorResponse:
        """POST the accumulated request once and decode the output items."""
        outstanding = request.outstanding_call_ids()
        if outstanding:
            raise ValueError(f"refusing to send request with unresolved tool calls: {sorted(outstanding)}")

        payload = request.to_payload(self.model)
        observability.log_event(
            "supervisor_request",
            agent="supervisorAgent",
            meta={"model": self.model, "input_items": len(payload["input"])},
        )
        start = time.perf_counter()
        try:
            raw = await self._get_client().responses.create(**payload)
            response = self._decode(raw)
        except (OpenAIError, httpx.HTTPError, ValueError) as exc:
            reason = compact_reason(exc)
            logger.warning("Supervisor round-trip failed: %s", reason)
            observability.log_event(
                "supervisor_error",
                agent="supervisorAgent",
                status="error",
                meta={"error": reason, "duration_ms": int((time.perf_counter() - start) * 1000)},
            )
            return SupervisorResponse.failure()

        observability.log_event(
            "supervisor_response",
            agent="supervisorAgent",
            meta={
                "duration_ms": int((time.perf_counter() - start) * 1000),
                "function_calls": len(response.function_calls),
                "messages": len(response.messages),
            },
        )
        return response


def build_supervisor_client(settings: Settings | None = None) -> SupervisorClient:
    settings = settings or get_settings()
    return SupervisorClient(
        model=settings.supervisor_model,
        base_url=settings.supervisor_base_url,
        api_key=settings.openai_api_key,
        timeout_s=settings.supervisor_timeout_s,
    )
