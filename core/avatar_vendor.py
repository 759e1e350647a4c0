"""
Avatar vendor client — HeyGen streaming token minting and avatar listing.

The server holds the vendor API key; browsers only ever receive the
short-lived streaming token. Failures are raised as ``AvatarVendorError`` with
the HTTP status the proxy routes should answer with.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from . import observability
from .config import Settings, get_settings
from .runtime import RuntimeObject
from .utils import compact_reason

logger = logging.getLogger(__name__)

_TOKEN_PATH = "/v1/streaming.create_token"
_AVATAR_LIST_PATH = "/v1/streaming.avatar.list"

# ── Errors ──────────────────────────────────────────────────────────────────


class AvatarVendorError(Exception):
    """Structured vendor error surfaced at the HTTP boundary."""

    def __init__(
        self,
        *,
        error_code: str,
        error_message: str,
        status_code: int = 500,
        meta: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(error_message)
        self.error_code = error_code
        self.error_message = error_message
        self.status_code = int(status_code)
        self.meta = dict(meta or {})

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error_message, "error_code": self.error_code}
        if self.meta:
            payload["meta"] = self.meta
        return payload


class ConfigurationError(AvatarVendorError):
    """The server is missing configuration required to reach the vendor."""

    def __init__(self, error_message: str) -> None:
        super().__init__(error_code="configuration_error", error_message=error_message, status_code=500)


# ── Models ──────────────────────────────────────────────────────────────────


class AvatarToken(BaseModel):
    token: str


class AvatarDescriptor(BaseModel):
    """One streaming avatar as listed by the vendor. Unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    avatar_id: str = ""
    pose_name: str | None = None
    normal_preview: str | None = None
    default_voice: str | None = None
    is_public: bool | None = None
    status: str | None = None


# ── Client ──────────────────────────────────────────────────────────────────


class HeyGenClient(RuntimeObject):
    """Async HeyGen REST client. ``transport`` is injectable for tests."""

    name: str = "heygen"
    api_key: str | None = None
    base_url: str = "https://api.heygen.com"
    timeout_s: float = 15.0
    transport: httpx.AsyncBaseTransport | None = Field(default=None, exclude=True)

    _http: httpx.AsyncClient | None = PrivateAttr(default=None)

    def _initialize_impl(self) -> None:
        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout_s, transport=self.transport)
        logger.info("HeyGen client initialized (base_url=%s)", self.base_url)

    async def _shutdown_impl(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _require_key(self) -> str:
        if not self.api_key:
            logger.error("HEYGEN_API_KEY is not configured")
            raise ConfigurationError("HeyGen API key not configured")
        return self.api_key

    async def _request(self, method: str, path: str, *, failure_message: str) -> dict[str, Any]:
        api_key = self._require_key()
        await self.initialize()
        assert self._http is not None
        headers = {"x-api-key": api_key}
        if method == "POST":
            headers["Content-Type"] = "application/json"
        try:
            response = await self._http.request(method, path, headers=headers)
        except httpx.HTTPError as exc:
            observability.log_event("vendor_error", agent=self.name, status="error", meta={"path": path, "error": str(exc)})
            raise AvatarVendorError(
                error_code="vendor_unreachable",
                error_message=failure_message,
                status_code=500,
                meta={"reason": compact_reason(exc)},
            ) from exc

        if response.is_error:
            logger.error("HeyGen API error %d on %s: %s", response.status_code, path, compact_reason(response.text))
            raise AvatarVendorError(
                error_code="vendor_error",
                error_message=failure_message,
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise AvatarVendorError(
                error_code="vendor_invalid_response",
                error_message=failure_message,
                status_code=500,
            ) from exc
        if not isinstance(data, dict):
            raise AvatarVendorError(error_code="vendor_invalid_response", error_message=failure_message)
        return data

    async def create_token(self) -> AvatarToken:
        data = await self._request("POST", _TOKEN_PATH, failure_message="Failed to create HeyGen token")
        payload = data.get("data")
        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            logger.error("Invalid HeyGen token response: %s", compact_reason(data))
            raise AvatarVendorError(
                error_code="vendor_invalid_response",
                error_message="Invalid token response from HeyGen",
                status_code=500,
            )
        observability.log_event("avatar_token_created", agent=self.name)
        return AvatarToken(token=token)

    async def list_avatars(self) -> list[AvatarDescriptor]:
        data = await self._request("GET", _AVATAR_LIST_PATH, failure_message="Failed to fetch avatars")
        raw = data.get("data")
        if not isinstance(raw, list):
            raise AvatarVendorError(error_code="vendor_invalid_response", error_message="Invalid avatar list from HeyGen")
        return [AvatarDescriptor.model_validate(item) for item in raw if isinstance(item, dict)]


def build_avatar_vendor(settings: Settings | None = None) -> HeyGenClient:
    settings = settings or get_settings()
    return HeyGenClient(api_key=settings.heygen_api_key, base_url=settings.heygen_base_url)
