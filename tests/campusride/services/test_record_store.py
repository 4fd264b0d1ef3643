from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timedelta, timezone

import pytest
from campusride.core.exceptions import RecordNotFoundError
from campusride.schemas.records import RideRequestStatus, RideStatus
from campusride.services.record_store import MemoryRecordStore

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def _ride(store: MemoryRecordStore, creator_id: int = 1):
    return store.create_ride(
        creator_id=creator_id,
        source="Hostel C",
        destination="Indore Airport",
        departure_time=T0,
        available_seats=3,
        cost_per_seat=150,
    )


def test_chat_ids_unique_and_increasing() -> None:
    store = MemoryRecordStore()

    ids = [
        store.create_chat_message(ride_id=1 + i % 3, user_id=7, message=f"m{i}", timestamp=T0).id
        for i in range(25)
    ]

    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)
    assert all(b > a for a, b in zip(ids, ids[1:]))


def test_counters_are_per_entity_kind() -> None:
    store = MemoryRecordStore()

    user = store.create_user(email="a@iiti.ac.in", password="hash", full_name="A")
    ride = _ride(store, creator_id=user.id)
    msg = store.create_chat_message(ride_id=ride.id, user_id=user.id, message="hi", timestamp=T0)

    assert (user.id, ride.id, msg.id) == (1, 1, 1)


def test_concurrent_creates_never_reuse_ids() -> None:
    store = MemoryRecordStore()

    def create(i: int) -> int:
        return store.create_chat_message(
            ride_id=1, user_id=i, message="x", timestamp=T0
        ).id

    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(create, range(200)))

    assert sorted(ids) == list(range(1, 201))


def test_lookups_wait_for_in_flight_writes() -> None:
    store = MemoryRecordStore()
    ride = _ride(store)
    user = store.create_user(email="a@campus.edu", password="pw", full_name="A")

    with ThreadPoolExecutor(max_workers=2) as pool:
        with store._lock:
            pending = [pool.submit(store.get_ride, ride.id), pool.submit(store.get_user, user.id)]
            done, _ = wait(pending, timeout=0.05)
            assert not done
        assert pending[0].result(timeout=1) == ride
        assert pending[1].result(timeout=1) == user


def test_messages_for_ride_sorted_by_timestamp_regardless_of_insertion() -> None:
    store = MemoryRecordStore()
    store.create_chat_message(ride_id=3, user_id=1, message="late", timestamp=T0 + timedelta(minutes=5))
    store.create_chat_message(ride_id=4, user_id=1, message="other ride", timestamp=T0)
    store.create_chat_message(ride_id=3, user_id=2, message="early", timestamp=T0 - timedelta(minutes=5))
    store.create_chat_message(ride_id=3, user_id=2, message="middle", timestamp=T0)

    messages = store.get_chat_messages_for_ride(3)

    assert [m.message for m in messages] == ["early", "middle", "late"]
    assert [m.timestamp for m in messages] == sorted(m.timestamp for m in messages)


def test_equal_timestamps_keep_creation_order() -> None:
    store = MemoryRecordStore()
    for text in ("one", "two", "three"):
        store.create_chat_message(ride_id=1, user_id=1, message=text, timestamp=T0)

    assert [m.message for m in store.get_chat_messages_for_ride(1)] == ["one", "two", "three"]


def test_unknown_ride_has_empty_history() -> None:
    assert MemoryRecordStore().get_chat_messages_for_ride(99) == []


def test_chat_message_may_have_no_user() -> None:
    store = MemoryRecordStore()
    msg = store.create_chat_message(ride_id=1, user_id=None, message="x", timestamp=T0)
    assert msg.user_id is None


def test_user_lookup_by_email_is_case_insensitive() -> None:
    store = MemoryRecordStore()
    user = store.create_user(email="Student@iiti.ac.in", password="hash", full_name="S")

    assert store.get_user(user.id) == user
    assert store.get_user_by_email("student@IITI.ac.in ") == user
    assert store.get_user_by_email("nobody@iiti.ac.in") is None


def test_ride_updates_replace_record() -> None:
    store = MemoryRecordStore()
    ride = _ride(store)

    active = store.update_ride_status(ride.id, RideStatus.active)
    located = store.update_ride_location(ride.id, "22.52,75.92")
    routed = store.update_ride_route(ride.id, '{"legs": []}')
    fewer_seats = store.update_ride(routed.model_copy(update={"available_seats": 2}))

    assert active.status is RideStatus.active
    assert located.current_location == "22.52,75.92"
    assert routed.route_data == '{"legs": []}'
    assert store.get_ride(ride.id) == fewer_seats
    assert fewer_seats.status is RideStatus.active
    assert store.list_rides() == [fewer_seats]


def test_updating_missing_ride_raises() -> None:
    store = MemoryRecordStore()
    with pytest.raises(RecordNotFoundError) as excinfo:
        store.update_ride_status(42, RideStatus.completed)
    assert excinfo.value.status_code == 404


def test_ride_requests_and_ratings_filter_by_ride() -> None:
    store = MemoryRecordStore()
    first, second = _ride(store), _ride(store)

    request = store.create_ride_request(ride_id=first.id, user_id=5)
    store.create_ride_request(ride_id=second.id, user_id=6)
    accepted = store.update_ride_request_status(request.id, RideRequestStatus.accepted)
    store.create_ride_rating(ride_id=first.id, user_id=5, rating=4, review="smooth")

    assert store.list_ride_requests(first.id) == [accepted]
    assert accepted.status is RideRequestStatus.accepted
    assert [r.rating for r in store.list_ride_ratings(first.id)] == [4]
    assert store.list_ride_ratings(second.id) == []

    with pytest.raises(RecordNotFoundError):
        store.update_ride_request_status(999, RideRequestStatus.rejected)
