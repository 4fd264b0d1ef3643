"""Registry of open realtime connections.

This is an in-memory broadcaster for a single process deployment. Every
connection owns a bounded outbound queue drained by its own sender task, so
``broadcast`` never awaits a socket: it enqueues one already-encoded frame per
connection in a single synchronous pass. That pass is the serialization point
that gives every client the same broadcast order.

The registry is not thread-safe; call it from the event loop that serves the
WebSocket endpoint.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import NewType, Protocol

logger = logging.getLogger(__name__)

ConnectionHandle = NewType("ConnectionHandle", int)

# RFC 6455 close codes used when the server drops a connection.
CLOSE_GOING_AWAY = 1001
CLOSE_INTERNAL_ERROR = 1011
CLOSE_TRY_AGAIN_LATER = 1013


class Connection(Protocol):
    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


@dataclass(eq=False)
class _Entry:
    handle: ConnectionHandle
    connection: Connection
    queue: asyncio.Queue[str]
    user_id: int | None = None
    rides: set[int] = field(default_factory=set)
    sender: asyncio.Task[None] | None = None


class ConnectionRegistry:
    """Tracks open connections, their bound user and their ride rooms."""

    def __init__(self, *, send_queue_size: int = 256) -> None:
        self._send_queue_size = max(1, int(send_queue_size))
        self._ids = itertools.count(1)
        self._entries: dict[ConnectionHandle, _Entry] = {}
        self._rooms: dict[int, set[ConnectionHandle]] = {}
        self._background: set[asyncio.Task[None]] = set()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, handle: object) -> bool:
        return handle in self._entries

    def register(self, connection: Connection) -> ConnectionHandle:
        """Admit an (already accepted) connection, unauthenticated."""
        handle = ConnectionHandle(next(self._ids))
        entry = _Entry(
            handle=handle,
            connection=connection,
            queue=asyncio.Queue(maxsize=self._send_queue_size),
        )
        entry.sender = asyncio.get_running_loop().create_task(
            self._pump(entry), name=f"ws-sender-{handle}"
        )
        self._entries[handle] = entry
        logger.info("Connection %s registered (%d open)", handle, len(self._entries))
        return handle

    def unregister(self, handle: ConnectionHandle) -> None:
        entry = self._entries.get(handle)
        if entry is None:
            return
        self._discard(entry)
        logger.info("Connection %s unregistered (%d open)", handle, len(self._entries))

    def bind(self, handle: ConnectionHandle, user_id: int) -> None:
        entry = self._entries.get(handle)
        if entry is None:
            return
        if entry.user_id is not None and entry.user_id != user_id:
            logger.info(
                "Connection %s rebound from user %s to %s", handle, entry.user_id, user_id
            )
        entry.user_id = user_id

    def user_id(self, handle: ConnectionHandle) -> int | None:
        entry = self._entries.get(handle)
        return entry.user_id if entry is not None else None

    # --- Ride rooms ---

    def subscribe(self, handle: ConnectionHandle, ride_id: int) -> bool:
        entry = self._entries.get(handle)
        if entry is None:
            return False
        entry.rides.add(ride_id)
        self._rooms.setdefault(ride_id, set()).add(handle)
        return True

    def unsubscribe(self, handle: ConnectionHandle, ride_id: int) -> None:
        entry = self._entries.get(handle)
        if entry is not None:
            entry.rides.discard(ride_id)
        members = self._rooms.get(ride_id)
        if not members:
            return
        members.discard(handle)
        if not members:
            self._rooms.pop(ride_id, None)

    def rides(self, handle: ConnectionHandle) -> frozenset[int]:
        entry = self._entries.get(handle)
        return frozenset(entry.rides) if entry is not None else frozenset()

    # --- Delivery ---

    def broadcast(self, frame: str) -> int:
        """Queue ``frame`` for every registered connection.

        Returns how many connections accepted the frame. Connections whose
        queue is full are dropped; nothing is raised to the caller.
        """
        return self._fan_out(list(self._entries.values()), frame)

    def broadcast_to_ride(self, ride_id: int, frame: str) -> int:
        handles = self._rooms.get(ride_id, set())
        targets = [self._entries[h] for h in sorted(handles) if h in self._entries]
        return self._fan_out(targets, frame)

    def send_to(self, handle: ConnectionHandle, frame: str) -> bool:
        entry = self._entries.get(handle)
        if entry is None:
            return False
        return self._enqueue(entry, frame)

    async def flush(self) -> None:
        """Wait until every frame queued so far has been handed to its socket."""
        queues = [entry.queue for entry in self._entries.values()]
        if queues:
            await asyncio.gather(*(q.join() for q in queues))

    async def close_all(self) -> None:
        entries = list(self._entries.values())
        for entry in entries:
            self._discard(entry, close_code=CLOSE_GOING_AWAY)
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _fan_out(self, entries: list[_Entry], frame: str) -> int:
        delivered = 0
        for entry in entries:
            if self._enqueue(entry, frame):
                delivered += 1
        return delivered

    def _enqueue(self, entry: _Entry, frame: str) -> bool:
        try:
            entry.queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(
                "Dropping connection %s: %d frames pending", entry.handle, entry.queue.qsize()
            )
            self._discard(entry, close_code=CLOSE_TRY_AGAIN_LATER)
            return False
        return True

    async def _pump(self, entry: _Entry) -> None:
        while True:
            frame = await entry.queue.get()
            try:
                await entry.connection.send_text(frame)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Send to connection %s failed: %s", entry.handle, exc)
                self._discard(entry, close_code=CLOSE_INTERNAL_ERROR)
                return
            finally:
                entry.queue.task_done()

    def _discard(self, entry: _Entry, *, close_code: int | None = None) -> None:
        if self._entries.get(entry.handle) is entry:
            del self._entries[entry.handle]
        for ride_id in list(entry.rides):
            self.unsubscribe(entry.handle, ride_id)

        while True:
            try:
                entry.queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            entry.queue.task_done()

        sender = entry.sender
        if sender is not None and sender is not asyncio.current_task() and not sender.done():
            sender.cancel()

        if close_code is not None:
            task = asyncio.get_running_loop().create_task(
                self._close_quietly(entry, close_code)
            )
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _close_quietly(self, entry: _Entry, code: int) -> None:
        try:
            await entry.connection.close(code=code)
        except Exception as exc:  # socket already gone
            logger.debug("Close of connection %s failed: %s", entry.handle, exc)
