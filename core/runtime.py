"""RuntimeObject — lifecycle base for long-lived services (vendor clients, channels)."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr


class RuntimeObject(BaseModel):
    """Shared initialize/shutdown contract, idempotent and lock-guarded."""

    model_config = {"arbitrary_types_allowed": True}

    name: str = Field(default="runtime_object")

    _is_initialized: bool = PrivateAttr(default=False)
    _lifecycle_lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    async def initialize(self) -> "RuntimeObject":
        async with self._lifecycle_lock:
            if self._is_initialized:
                return self
            result = self._initialize_impl()
            if inspect.isawaitable(result):
                await result
            self._is_initialized = True
            return self

    async def shutdown(self) -> None:
        async with self._lifecycle_lock:
            if not self._is_initialized:
                return
            result = self._shutdown_impl()
            if inspect.isawaitable(result):
                await result
            self._is_initialized = False

    async def __aenter__(self) -> "RuntimeObject":
        return await self.initialize()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()

    def _initialize_impl(self) -> Any:
        """Override in subclass for startup logic."""

    def _shutdown_impl(self) -> Any:
        """Override in subclass for teardown logic."""
