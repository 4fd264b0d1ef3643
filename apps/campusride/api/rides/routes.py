from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from campusride.core.dependencies import get_record_store
from campusride.schemas.records import ChatMessage
from campusride.services.record_store import MemoryRecordStore

router = APIRouter(prefix="/api/rides", tags=["rides"])


@router.get("/{ride_id}/messages", response_model=list[ChatMessage])
def list_ride_messages(
    ride_id: int = Path(gt=0),
    store: MemoryRecordStore = Depends(get_record_store),
) -> list[ChatMessage]:
    """Chat history for a ride, oldest first. Clients load this before opening `/ws`."""
    return store.get_chat_messages_for_ride(ride_id)
