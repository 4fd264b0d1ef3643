"""Pydantic schemas shared across the app."""

from .frames import InboundFrame, OutboundFrame
from .records import (
    ChatMessage,
    Ride,
    RideRating,
    RideRequest,
    RideRequestStatus,
    RideStatus,
    User,
)

__all__ = [
    "ChatMessage",
    "InboundFrame",
    "OutboundFrame",
    "Ride",
    "RideRating",
    "RideRequest",
    "RideRequestStatus",
    "RideStatus",
    "User",
]
