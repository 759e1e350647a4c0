"""
Runtime settings — one Pydantic object resolved from the environment.

``.env`` is loaded by the CLI entrypoint before anything imports this module,
so every field simply reads ``os.environ`` through its default factory.

Usage:
    from core.config import get_settings

    settings = get_settings()
"""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field

_DEFAULT_SUPERVISOR_MODEL = "gpt-4.1"
_DEFAULT_HEYGEN_URL = "https://api.heygen.com"
_DEFAULT_MAX_ROUNDS = 8
_DEFAULT_TIMEOUT_S = 30.0


def _optional(name: str) -> str | None:
    value = os.getenv(name)
    if value and value.strip():
        return value.strip()
    return None


def _split_csv(raw: str | None) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


class Settings(BaseModel):
    """Process-wide configuration. Immutable once built."""

    model_config = {"frozen": True, "validate_default": True}

    app_env: str = Field(default_factory=lambda: (os.getenv("APP_ENV") or "dev").strip().lower())
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    company_name: str = Field(default_factory=lambda: os.getenv("COMPANY_NAME", "Cocoa AI"))

    # ── supervisor (completion endpoint) ─────────────────────────────────
    openai_api_key: str | None = Field(default_factory=lambda: _optional("OPENAI_API_KEY"))
    supervisor_model: str = Field(
        default_factory=lambda: os.getenv("SUPERVISOR_MODEL", _DEFAULT_SUPERVISOR_MODEL)
    )
    supervisor_base_url: str | None = Field(default_factory=lambda: _optional("SUPERVISOR_BASE_URL"))
    supervisor_timeout_s: float = Field(
        default_factory=lambda: float(os.getenv("SUPERVISOR_TIMEOUT_S", str(_DEFAULT_TIMEOUT_S))),
        gt=0,
    )
    supervisor_max_rounds: int = Field(
        default_factory=lambda: int(os.getenv("SUPERVISOR_MAX_ROUNDS", str(_DEFAULT_MAX_ROUNDS))),
        ge=1,
    )

    # ── avatar vendor ────────────────────────────────────────────────────
    heygen_api_key: str | None = Field(default_factory=lambda: _optional("HEYGEN_API_KEY"))
    heygen_base_url: str = Field(
        default_factory=lambda: (os.getenv("HEYGEN_BASE_URL") or _DEFAULT_HEYGEN_URL).rstrip("/")
    )

    # ── fixtures / web ───────────────────────────────────────────────────
    knowledge_base_path: str | None = Field(default_factory=lambda: _optional("KNOWLEDGE_BASE_PATH"))
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: _split_csv(os.getenv("CORS_ALLOW_ORIGINS")) or ["*"]
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor. Call ``get_settings.cache_clear()`` after env changes."""
    return Settings()
