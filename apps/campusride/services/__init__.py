"""Service layer package: record store, connection registry and chat relay."""

from .chat_relay import ChatRelay, RelayPolicy
from .connection_registry import ConnectionHandle, ConnectionRegistry
from .record_store import MemoryRecordStore

__all__ = [
    "ChatRelay",
    "ConnectionHandle",
    "ConnectionRegistry",
    "MemoryRecordStore",
    "RelayPolicy",
]
