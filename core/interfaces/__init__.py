"""Abstract peripherals consumed by the app layer."""

from .peripherals import AvatarController, AvatarTaskType

__all__ = ["AvatarController", "AvatarTaskType"]
