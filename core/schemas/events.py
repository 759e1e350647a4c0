from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ClientEventType(str, Enum):
    TEXT = "text"
    SYSTEM = "system"
    COLLECT = "collect"


class SystemCommand(str, Enum):
    START = "start"
    CLEAR = "clear"
    INTERRUPT = "interrupt"
    STOP = "stop"


class BaseClientEvent(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ClientTextEvent(BaseClientEvent):
    """A finished user utterance (typed, or transcribed by the realtime front end)."""

    type: Literal[ClientEventType.TEXT] = ClientEventType.TEXT
    text: str
    # Key information the front model extracted from this utterance, if any.
    relevant_context: Optional[str] = None
    request_id: Optional[str] = None


class ClientSystemEvent(BaseClientEvent):
    type: Literal[ClientEventType.SYSTEM] = ClientEventType.SYSTEM
    command: SystemCommand
    payload: Optional[dict[str, Any]] = None


class ClientCollectEvent(BaseClientEvent):
    """Ask the user for a parameter a supervisor tool still needs."""

    type: Literal[ClientEventType.COLLECT] = ClientEventType.COLLECT
    tool: str
    field: str


ClientEvent = Annotated[Union[ClientTextEvent, ClientSystemEvent, ClientCollectEvent], Field(discriminator="type")]

client_event_adapter: TypeAdapter = TypeAdapter(ClientEvent)
