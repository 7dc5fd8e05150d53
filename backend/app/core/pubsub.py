# backend/app/core/pubsub.py
"""
Fanout dispatcher for socket events.

Write-path handlers call into this module after a change has been committed
to the database; the dispatcher looks up who is currently in the target
room(s) and pushes the event to each of them.

Delivery is best effort:
- the member list is a snapshot taken when broadcast() is called
- every member gets its own send task, started in join order
- each send is bounded by send_timeout, so a stalled socket holds up nobody
- a failure on one member is logged and the rest still get the event
- nothing is retried and nothing is reported back to the caller
"""
import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

from app.core.connection import Connection
from app.core.errors import DeliveryFailure
from app.core.events import ChatEvent, Room
from app.core.registry import RoomRegistry

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Publishes events to rooms held in a RoomRegistry.

    Architecture:
    - Router/lifecycle code owns accept() and join/leave; this class only routes
    - Room "chat:<id>" holds every connection viewing a chat
    - Room "user:<id>" holds every connection of one user (joined automatically)
    """
    def __init__(self, registry: RoomRegistry, *, send_timeout: float = 5.0):
        self._registry = registry
        self._send_timeout = send_timeout

    async def emit(self, handle: str, event: ChatEvent, payload: Any = None) -> bool:
        """
        Send an event to a single connection.

        Returns:
            True if the frame was written, False if the connection is unknown
            or could not be reached
        """
        connection = await self._registry.connection(handle)
        if connection is None:
            return False
        return await self._deliver(connection, event, payload, where=handle)

    async def broadcast(
        self,
        room: Room,
        event: ChatEvent,
        payload: Any = None,
        *,
        exclude: Optional[str] = None,
        exclude_user: Optional[Any] = None,
    ) -> int:
        """
        Publish an event to every connection in a room.

        Args:
            room: Target room
            event: Event name
            payload: Any JSON-encodable value, forwarded as-is
            exclude: Connection handle to skip (e.g. the typing client)
            exclude_user: User id whose connections are all skipped (e.g. the sender)

        Returns:
            Number of connections the event was written to
        """
        return await self.broadcast_rooms(
            [room], event, payload, exclude=exclude, exclude_user=exclude_user
        )

    async def broadcast_rooms(
        self,
        rooms: Iterable[Room],
        event: ChatEvent,
        payload: Any = None,
        *,
        exclude: Optional[str] = None,
        exclude_user: Optional[Any] = None,
    ) -> int:
        """
        Publish an event to the union of several rooms. A connection that sits
        in more than one of them gets the event once.
        """
        rooms = list(dict.fromkeys(rooms))
        skip_user = str(exclude_user) if exclude_user is not None else None
        targets: Dict[str, Connection] = {}
        for room in rooms:
            for conn in await self._registry.snapshot(room):
                if conn.handle == exclude:
                    continue
                if skip_user is not None and conn.user_id == skip_user:
                    continue
                targets.setdefault(conn.handle, conn)

        where = ",".join(str(r) for r in rooms)
        results = await asyncio.gather(
            *(self._deliver(conn, event, payload, where=where) for conn in targets.values())
        )
        delivered = sum(results)
        logger.debug("[pubsub] %s -> %s delivered=%d", event.value, where, delivered)
        return delivered

    async def notify_users(
        self,
        user_ids: Iterable[Any],
        event: ChatEvent,
        payload: Any = None,
        *,
        skip_user: Optional[Any] = None,
    ) -> int:
        """Broadcast to the personal room of each user, optionally skipping one."""
        skip = str(skip_user) if skip_user is not None else None
        rooms = [Room.user(uid) for uid in dict.fromkeys(str(u) for u in user_ids) if uid != skip]
        if not rooms:
            return 0
        return await self.broadcast_rooms(rooms, event, payload)

    async def _deliver(self, conn: Connection, event: ChatEvent, payload: Any, *, where: str) -> bool:
        try:
            await asyncio.wait_for(conn.channel.emit(event, payload), timeout=self._send_timeout)
        except asyncio.TimeoutError:
            logger.warning("[pubsub] %s to %s in %s timed out after %ss",
                           event.value, conn.handle, where, self._send_timeout)
            return False
        except DeliveryFailure as e:
            logger.warning("[pubsub] %s to %s in %s failed: %s",
                           event.value, conn.handle, where, e.message)
            return False
        return True
