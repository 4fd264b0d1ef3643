from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RecordModel(BaseModel):
    """Stored entity. Serialized with camelCase keys to match the browser client."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: int


class RideStatus(str, Enum):
    pending = "pending"
    active = "active"
    completed = "completed"


class RideRequestStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class User(RecordModel):
    email: str
    password: str = Field(repr=False)
    full_name: str


class Ride(RecordModel):
    creator_id: int
    source: str
    destination: str
    departure_time: datetime
    available_seats: int = Field(ge=0)
    cost_per_seat: int = Field(ge=0)
    status: RideStatus = RideStatus.pending
    current_location: str | None = None
    route_data: str | None = None


class RideRequest(RecordModel):
    ride_id: int
    user_id: int
    status: RideRequestStatus = RideRequestStatus.pending


class RideRating(RecordModel):
    ride_id: int
    user_id: int
    rating: int = Field(ge=1, le=5)
    review: str | None = None


class ChatMessage(RecordModel):
    ride_id: int
    # None only when unauthenticated chat is allowed by configuration.
    user_id: int | None = None
    message: str = Field(min_length=1)
    timestamp: datetime
