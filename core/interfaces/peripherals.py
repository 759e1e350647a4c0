from abc import ABC, abstractmethod
from enum import Enum


class AvatarTaskType(str, Enum):
    """How the avatar treats text handed to ``speak``."""

    REPEAT = "repeat"  # read verbatim


class AvatarController(ABC):
    """Abstract talking-avatar session, driven by the UI side of a conversation."""

    @abstractmethod
    async def initialize(self, token: str) -> None:
        """
        Starts an avatar session.

        Args:
            token (str): A short-lived streaming token minted by the avatar vendor.
        """

    @abstractmethod
    async def speak(self, text: str, task_type: AvatarTaskType = AvatarTaskType.REPEAT) -> None:
        """
        Has the avatar say ``text``.

        Args:
            text (str): The utterance, relayed verbatim for ``REPEAT`` tasks.
            task_type (AvatarTaskType): Vendor task type.
        """

    @abstractmethod
    async def interrupt(self) -> None:
        """Cuts off the utterance currently being spoken."""

    @abstractmethod
    async def stop(self) -> None:
        """Ends the avatar session."""
