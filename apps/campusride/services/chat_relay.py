"""Chat relay: interprets inbound WebSocket frames, persists chat, fans it out.

Frames are fire-and-forget. Anything the relay cannot act on is dropped, the
connection stays open and, when error frames are enabled, only the sender hears
about it. A chat message is stored before it is broadcast and nothing awaits in
between, so broadcast order always matches store order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ValidationError

from campusride.core.exceptions import AuthenticationError, InvalidFrameError
from campusride.core.security import SessionTokenSigner
from campusride.core.settings import Settings
from campusride.schemas import frames
from campusride.schemas.frames import (
    AuthPayload,
    ChatMessagePayload,
    InboundFrame,
    OutboundFrame,
    RideRoomPayload,
)
from campusride.schemas.records import ChatMessage
from campusride.services.connection_registry import ConnectionHandle, ConnectionRegistry
from campusride.services.record_store import MemoryRecordStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RelayPolicy:
    require_auth: bool = True
    trust_client_user_id: bool = True
    broadcast_scope: Literal["all", "ride"] = "all"
    error_frames: bool = False
    max_message_length: int = 2000

    @classmethod
    def from_settings(cls, settings: Settings) -> "RelayPolicy":
        return cls(
            require_auth=settings.ws_require_auth,
            trust_client_user_id=settings.ws_trust_client_user_id,
            broadcast_scope=settings.ws_broadcast_scope,
            error_frames=settings.ws_error_frames,
            max_message_length=settings.ws_max_message_length,
        )


class ChatRelay:
    def __init__(
        self,
        *,
        store: MemoryRecordStore,
        registry: ConnectionRegistry,
        policy: RelayPolicy | None = None,
        signer: SessionTokenSigner | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.registry = registry
        self.policy = policy or RelayPolicy()
        self._signer = signer
        self._clock = clock

    def handle_frame(self, handle: ConnectionHandle, raw: str | bytes) -> ChatMessage | None:
        """Process one inbound frame from ``handle``.

        Returns the persisted message when the frame produced one. Store errors
        propagate so that a message that failed to persist is never broadcast.
        """
        try:
            frame = self._parse(raw)
            return self._dispatch(handle, frame)
        except (InvalidFrameError, AuthenticationError) as exc:
            logger.debug("Dropped frame from connection %s: %s", handle, exc.message)
            self._reject(handle, exc.code or "invalid_frame", exc.message)
            return None

    def _parse(self, raw: str | bytes) -> InboundFrame:
        try:
            frame = InboundFrame.model_validate_json(raw)
        except ValidationError as exc:
            raise InvalidFrameError("Malformed frame", code="malformed_frame") from exc
        if frame.type not in frames.INBOUND_TYPES:
            raise InvalidFrameError(
                f"Unknown frame type: {frame.type!r}", code="unknown_type"
            )
        return frame

    def _dispatch(self, handle: ConnectionHandle, frame: InboundFrame) -> ChatMessage | None:
        if frame.type == frames.AUTH:
            self._authenticate(handle, _payload(AuthPayload, frame))
            return None
        if frame.type == frames.SUBSCRIBE:
            self.registry.subscribe(handle, _payload(RideRoomPayload, frame).ride_id)
            return None
        if frame.type == frames.UNSUBSCRIBE:
            self.registry.unsubscribe(handle, _payload(RideRoomPayload, frame).ride_id)
            return None
        return self._chat(handle, _payload(ChatMessagePayload, frame))

    def _authenticate(self, handle: ConnectionHandle, payload: AuthPayload) -> None:
        if payload.token is not None:
            if self._signer is None:
                raise AuthenticationError(
                    "Token authentication is not configured", code="token_auth_unavailable"
                )
            user_id = self._signer.verify(payload.token)
        elif self.policy.trust_client_user_id:
            user_id = payload.user_id
        else:
            raise AuthenticationError(
                "A signed session token is required", code="token_required"
            )

        self.registry.bind(handle, user_id)
        logger.debug("Connection %s authenticated as user %s", handle, user_id)

    def _chat(self, handle: ConnectionHandle, payload: ChatMessagePayload) -> ChatMessage | None:
        if len(payload.message) > self.policy.max_message_length:
            raise InvalidFrameError(
                f"Message exceeds {self.policy.max_message_length} characters",
                code="message_too_long",
            )

        user_id = self.registry.user_id(handle)
        if user_id is None and self.policy.require_auth:
            logger.info(
                "Rejected chat for ride %s from unauthenticated connection %s",
                payload.ride_id,
                handle,
            )
            raise InvalidFrameError("Authenticate before chatting", code="unauthenticated")

        record = self.store.create_chat_message(
            ride_id=payload.ride_id,
            user_id=user_id,
            message=payload.message,
            timestamp=self._clock(),
        )
        encoded = OutboundFrame.chat_message(record).encode()

        if self.policy.broadcast_scope == "ride":
            self.registry.subscribe(handle, record.ride_id)
            delivered = self.registry.broadcast_to_ride(record.ride_id, encoded)
        else:
            delivered = self.registry.broadcast(encoded)

        logger.debug(
            "Chat message %s for ride %s queued to %d connection(s)",
            record.id,
            record.ride_id,
            delivered,
        )
        return record

    def _reject(self, handle: ConnectionHandle, code: str, message: str) -> None:
        if not self.policy.error_frames:
            return
        self.registry.send_to(handle, OutboundFrame.error(code, message).encode())


def _payload(model: type[BaseModel], frame: InboundFrame):
    try:
        return model.model_validate(frame.payload)
    except ValidationError as exc:
        raise InvalidFrameError(
            f"Invalid {frame.type} payload",
            code="invalid_payload",
            details=exc.errors(include_url=False),
        ) from exc
