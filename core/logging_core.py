"""Core logging bridge.

Core modules take a module logger from stdlib ``logging`` directly; app,
channel and agent modules go through the helpers below so every log line
shares one format and the optional ``meta`` suffix.
"""

from __future__ import annotations

import logging
from typing import Any

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Client libraries that log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging once for the whole application."""
    logging.basicConfig(level=_resolve_level(level), format=_FORMAT)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _render(message: str, args: tuple[Any, ...], meta: dict[str, Any] | None) -> str:
    if args:
        try:
            message = message % args
        except (TypeError, ValueError):
            message = f"{message} {' '.join(str(arg) for arg in args)}".strip()
    if meta:
        message = f"{message} | meta={meta}"
    return message


def log_debug(component: str, message: str, *args: Any, meta: dict[str, Any] | None = None) -> None:
    logging.getLogger(component).debug(_render(message, args, meta))


def log_info(component: str, message: str, *args: Any, meta: dict[str, Any] | None = None) -> None:
    logging.getLogger(component).info(_render(message, args, meta))


def log_warning(component: str, message: str, *args: Any, meta: dict[str, Any] | None = None) -> None:
    logging.getLogger(component).warning(_render(message, args, meta))


def log_exception(component: str, message: str, *args: Any, meta: dict[str, Any] | None = None) -> None:
    logging.getLogger(component).exception(_render(message, args, meta))
