# app/services/connection_registry.py

import asyncio
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set
from uuid import uuid4

from fastapi import WebSocket

from app.core.config import settings
from app.core.logger import logger


class ConnectionState(str, Enum):
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    CLOSED = "closed"


class Connection:
    """
    One live socket, bound to the identity verified at handshake.

    Outgoing frames are queued in `outbox` and written by `run_writer`, so
    whoever pushes to this connection never waits on its network.
    """

    def __init__(
        self,
        websocket: WebSocket,
        identity: str,
        send_timeout: Optional[float] = None,
        outbox_size: Optional[int] = None,
    ):
        self.websocket = websocket
        self.identity = identity
        self.connection_id = uuid4().hex
        self.user_id: Optional[str] = None
        self.state = ConnectionState.UNREGISTERED
        self.send_timeout = send_timeout if send_timeout is not None else settings.WS_SEND_TIMEOUT_SECONDS
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_size or settings.WS_OUTBOX_SIZE)
        self.closing_task: Optional[asyncio.Task] = None

    def send_event(self, event: str, data: Any) -> bool:
        """Queue a frame for this client. False if the connection is closed or its outbox is full."""
        if self.state == ConnectionState.CLOSED:
            return False
        try:
            self.outbox.put_nowait({"event": event, "data": data})
        except asyncio.QueueFull:
            return False
        return True

    async def run_writer(self) -> None:
        while True:
            frame = await self.outbox.get()
            try:
                await asyncio.wait_for(self.websocket.send_json(frame), timeout=self.send_timeout)
            except Exception as e:
                logger.warning(f"Write to {self.connection_id} ({self.user_id}) failed: {e!r}")
                self.state = ConnectionState.CLOSED
                await self.close(code=1011)
                return

    async def close(self, code: int = 1000) -> None:
        try:
            await asyncio.wait_for(self.websocket.close(code=code), timeout=self.send_timeout)
        except Exception as e:
            logger.debug(f"Close on {self.connection_id} ignored: {e!r}")

    def abort(self, code: int = 1011) -> None:
        """Mark closed now and close the socket in the background."""
        self.state = ConnectionState.CLOSED
        if self.closing_task is None:
            self.closing_task = asyncio.create_task(self.close(code=code))

    def __repr__(self) -> str:
        return f"<Connection {self.connection_id} user={self.user_id} state={self.state.value}>"


class ConnectionRegistry:
    """
    Maps a user id to the set of its live connections.

    No method awaits, so on the event loop every call is atomic with respect
    to other connections. Fan-out iterates over a snapshot, so a connection
    leaving mid-delivery never disturbs the iteration.
    """

    def __init__(self):
        self._targets: Dict[str, Set[Connection]] = {}

    def register(self, connection: Connection, user_id: str) -> None:
        if connection.user_id is not None and connection.user_id != user_id:
            self._discard(connection)
        self._targets.setdefault(user_id, set()).add(connection)
        connection.user_id = user_id
        connection.state = ConnectionState.REGISTERED
        logger.info(f"Connection {connection.connection_id} joined room {user_id}")

    def deregister(self, connection: Connection) -> None:
        self._discard(connection)
        connection.state = ConnectionState.CLOSED

    def _discard(self, connection: Connection) -> None:
        if connection.user_id is None:
            return
        connections = self._targets.get(connection.user_id)
        if connections is None or connection not in connections:
            return
        connections.discard(connection)
        if not connections:
            del self._targets[connection.user_id]
        logger.info(f"Connection {connection.connection_id} left room {connection.user_id}")

    def connections_for(self, user_id: str) -> Set[Connection]:
        return set(self._targets.get(user_id, ()))

    def targets(self, user_ids: Iterable[str]) -> List[Connection]:
        seen: Set[Connection] = set()
        snapshot: List[Connection] = []
        for user_id in user_ids:
            for connection in list(self._targets.get(user_id, ())):
                if connection not in seen:
                    seen.add(connection)
                    snapshot.append(connection)
        return snapshot

    def fan_out(self, user_ids: Iterable[str], event: str, data: Any) -> int:
        """Queue one event for every live connection of the given users. Returns how many took it."""
        delivered = 0
        for connection in self.targets(user_ids):
            if connection.send_event(event, data):
                delivered += 1
                continue
            # Undeliverable targets are dropped; the message stays in history
            logger.warning(f"Skipping delivery to {connection.connection_id} ({connection.user_id}): outbox full or closed")
            self.deregister(connection)
            connection.abort(code=1011)
        return delivered


registry = ConnectionRegistry()


def get_registry() -> ConnectionRegistry:
    return registry
