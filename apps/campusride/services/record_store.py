"""In-memory record store for every entity kind of the ride-sharing service.

Records live for the lifetime of the process. Each entity kind draws ids from
its own counter, so ids are unique and strictly increasing within a kind.
Mutations are serialized with a thread lock: REST handlers run in FastAPI's
threadpool while the chat relay calls in from the event loop.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterator
from datetime import datetime
from threading import Lock
from typing import Any

from campusride.core.exceptions import RecordNotFoundError
from campusride.schemas.records import (
    ChatMessage,
    Ride,
    RideRating,
    RideRequest,
    RideRequestStatus,
    RideStatus,
    User,
)

logger = logging.getLogger(__name__)


class MemoryRecordStore:
    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: dict[str, Iterator[int]] = {}
        self._users: dict[int, User] = {}
        self._rides: dict[int, Ride] = {}
        self._ride_requests: dict[int, RideRequest] = {}
        self._ride_ratings: dict[int, RideRating] = {}
        self._chat_messages: dict[int, ChatMessage] = {}

    def _next_id(self, kind: str) -> int:
        # Caller holds self._lock.
        counter = self._counters.get(kind)
        if counter is None:
            counter = self._counters[kind] = itertools.count(1)
        return next(counter)

    # --- Users ---

    def create_user(self, *, email: str, password: str, full_name: str) -> User:
        with self._lock:
            user = User(
                id=self._next_id("user"),
                email=email,
                password=password,
                full_name=full_name,
            )
            self._users[user.id] = user
        return user

    def get_user(self, user_id: int) -> User | None:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> User | None:
        needle = email.strip().lower()
        with self._lock:
            users = list(self._users.values())
        return next((u for u in users if u.email.lower() == needle), None)

    # --- Rides ---

    def create_ride(
        self,
        *,
        creator_id: int,
        source: str,
        destination: str,
        departure_time: datetime,
        available_seats: int,
        cost_per_seat: int,
        status: RideStatus = RideStatus.pending,
        current_location: str | None = None,
        route_data: str | None = None,
    ) -> Ride:
        with self._lock:
            ride = Ride(
                id=self._next_id("ride"),
                creator_id=creator_id,
                source=source,
                destination=destination,
                departure_time=departure_time,
                available_seats=available_seats,
                cost_per_seat=cost_per_seat,
                status=status,
                current_location=current_location,
                route_data=route_data,
            )
            self._rides[ride.id] = ride
        return ride

    def get_ride(self, ride_id: int) -> Ride | None:
        with self._lock:
            return self._rides.get(ride_id)

    def list_rides(self) -> list[Ride]:
        with self._lock:
            return sorted(self._rides.values(), key=lambda r: r.id)

    def _replace_ride(self, ride_id: int, **changes: Any) -> Ride:
        with self._lock:
            ride = self._rides.get(ride_id)
            if ride is None:
                raise RecordNotFoundError("Ride not found", details={"ride_id": ride_id})
            updated = ride.model_copy(update=changes)
            self._rides[ride_id] = updated
        return updated

    def update_ride_status(self, ride_id: int, status: RideStatus) -> Ride:
        return self._replace_ride(ride_id, status=RideStatus(status))

    def update_ride_location(self, ride_id: int, current_location: str) -> Ride:
        return self._replace_ride(ride_id, current_location=current_location)

    def update_ride_route(self, ride_id: int, route_data: str) -> Ride:
        return self._replace_ride(ride_id, route_data=route_data)

    def update_ride(self, ride: Ride) -> Ride:
        """Replace a ride wholesale, e.g. after decrementing available seats."""
        with self._lock:
            if ride.id not in self._rides:
                raise RecordNotFoundError("Ride not found", details={"ride_id": ride.id})
            self._rides[ride.id] = ride
        return ride

    # --- Ride requests ---

    def create_ride_request(
        self,
        *,
        ride_id: int,
        user_id: int,
        status: RideRequestStatus = RideRequestStatus.pending,
    ) -> RideRequest:
        with self._lock:
            request = RideRequest(
                id=self._next_id("ride_request"),
                ride_id=ride_id,
                user_id=user_id,
                status=status,
            )
            self._ride_requests[request.id] = request
        return request

    def list_ride_requests(self, ride_id: int) -> list[RideRequest]:
        with self._lock:
            return [r for r in self._ride_requests.values() if r.ride_id == ride_id]

    def update_ride_request_status(
        self, request_id: int, status: RideRequestStatus
    ) -> RideRequest:
        with self._lock:
            request = self._ride_requests.get(request_id)
            if request is None:
                raise RecordNotFoundError(
                    "Request not found", details={"request_id": request_id}
                )
            updated = request.model_copy(update={"status": RideRequestStatus(status)})
            self._ride_requests[request_id] = updated
        return updated

    # --- Ratings ---

    def create_ride_rating(
        self,
        *,
        ride_id: int,
        user_id: int,
        rating: int,
        review: str | None = None,
    ) -> RideRating:
        with self._lock:
            record = RideRating(
                id=self._next_id("ride_rating"),
                ride_id=ride_id,
                user_id=user_id,
                rating=rating,
                review=review,
            )
            self._ride_ratings[record.id] = record
        return record

    def list_ride_ratings(self, ride_id: int) -> list[RideRating]:
        with self._lock:
            return [r for r in self._ride_ratings.values() if r.ride_id == ride_id]

    # --- Chat ---

    def create_chat_message(
        self,
        *,
        ride_id: int,
        user_id: int | None,
        message: str,
        timestamp: datetime,
    ) -> ChatMessage:
        with self._lock:
            record = ChatMessage(
                id=self._next_id("chat_message"),
                ride_id=ride_id,
                user_id=user_id,
                message=message,
                timestamp=timestamp,
            )
            self._chat_messages[record.id] = record
        logger.debug("Stored chat message id=%s ride_id=%s", record.id, ride_id)
        return record

    def get_chat_messages_for_ride(self, ride_id: int) -> list[ChatMessage]:
        with self._lock:
            messages = [m for m in self._chat_messages.values() if m.ride_id == ride_id]
        return sorted(messages, key=lambda m: (m.timestamp, m.id))
