"""WebSocket frame envelopes for the chat relay."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    StringConstraints,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from campusride.schemas.records import ChatMessage

AUTH = "auth"
CHAT_MESSAGE = "chat_message"
SUBSCRIBE = "subscribe"
UNSUBSCRIBE = "unsubscribe"
ERROR = "error"

INBOUND_TYPES = frozenset({AUTH, CHAT_MESSAGE, SUBSCRIBE, UNSUBSCRIBE})

RideId = Annotated[StrictInt, Field(gt=0)]


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InboundFrame(BaseModel):
    """Client → server envelope. ``payload`` is validated per ``type`` later."""

    type: StrictStr
    payload: dict[str, Any] = Field(default_factory=dict)


class AuthPayload(_Payload):
    user_id: StrictInt | None = None
    token: Annotated[StrictStr, StringConstraints(min_length=1)] | None = None

    @model_validator(mode="after")
    def _require_identity(self) -> "AuthPayload":
        if self.user_id is None and self.token is None:
            raise ValueError("auth frame needs userId or token")
        return self


class ChatMessagePayload(_Payload):
    ride_id: RideId
    message: StrictStr

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


class RideRoomPayload(_Payload):
    ride_id: RideId


class ErrorPayload(BaseModel):
    code: str
    message: str


class OutboundFrame(BaseModel):
    type: str
    payload: dict[str, Any]

    @classmethod
    def chat_message(cls, record: ChatMessage) -> "OutboundFrame":
        return cls(type=CHAT_MESSAGE, payload=record.model_dump(mode="json", by_alias=True))

    @classmethod
    def error(cls, code: str, message: str) -> "OutboundFrame":
        return cls(type=ERROR, payload=ErrorPayload(code=code, message=message).model_dump())

    def encode(self) -> str:
        return self.model_dump_json()
