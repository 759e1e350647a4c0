"""
Channels package — connection mediums between clients and the application.

Architecture:
    BaseChannel                 — abstract interface every channel implements
    └─ WebSocketChannel         — real-time browser UI connection, one socket per session
    WebSocketAvatarController   — AvatarController that speaks through a WebSocketChannel

Usage:
    from channels import WebSocketChannel, WebSocketAvatarController
"""

from .avatar_controller import WebSocketAvatarController
from .base import BaseChannel
from .websocket_channel import WebSocketChannel

__all__ = [
    "BaseChannel",
    "WebSocketChannel",
    "WebSocketAvatarController",
]
