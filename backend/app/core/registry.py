# app/core/registry.py
"""
Room membership registry.

Maps a Room (chat room or per-user room) to the ordered set of connection
handles currently subscribed to it. Handles are opaque strings, so the
registry can be exercised without any transport.

Data structures (all guarded by one asyncio.Lock):
- _rooms:       Room -> {handle: None}   (dict keeps join order)
- _memberships: handle -> set(Room)      (reverse index, used for teardown)
- _connections: handle -> Connection     (live connections, for delivery)

Every operation takes the lock, so a concurrent members_of() can never see a
connection that is half way through being removed from its rooms.
"""
import asyncio
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from app.core.connection import Connection
from app.core.events import Room


class RoomRegistry:
    def __init__(self):
        self._rooms: Dict[Room, Dict[str, None]] = {}
        self._memberships: Dict[str, Set[Room]] = {}
        self._connections: Dict[str, Connection] = {}
        self._lock = asyncio.Lock()

    # -------- connections --------
    async def attach(self, connection: Connection) -> None:
        """Make a connection resolvable by handle for delivery."""
        async with self._lock:
            self._connections[connection.handle] = connection

    async def detach(self, handle: str) -> FrozenSet[Room]:
        """
        Forget a connection and remove it from every room it joined, in one
        critical section. Returns the rooms it was a member of.
        """
        async with self._lock:
            self._connections.pop(handle, None)
            rooms = self._memberships.pop(handle, set())
            for room in rooms:
                self._discard(room, handle)
            return frozenset(rooms)

    async def connection(self, handle: str) -> Optional[Connection]:
        async with self._lock:
            return self._connections.get(handle)

    # -------- membership --------
    async def join(self, room: Room, handle: str) -> bool:
        """Add handle to room. Returns False if it was already a member."""
        async with self._lock:
            members = self._rooms.setdefault(room, {})
            if handle in members:
                return False
            members[handle] = None
            self._memberships.setdefault(handle, set()).add(room)
            return True

    async def leave(self, room: Room, handle: str) -> bool:
        """Remove handle from room, pruning the room when it empties."""
        async with self._lock:
            if handle not in self._rooms.get(room, {}):
                return False
            self._unlink(room, handle)
            return True

    async def leave_user(self, room: Room, user_id: str) -> Tuple[str, ...]:
        """Remove every connection of one identity from a room."""
        async with self._lock:
            removed = tuple(
                h for h in self._rooms.get(room, {})
                if (c := self._connections.get(h)) is not None and c.user_id == str(user_id)
            )
            for handle in removed:
                self._unlink(room, handle)
            return removed

    async def close_room(self, room: Room) -> Tuple[str, ...]:
        """Drop a room and all of its memberships."""
        async with self._lock:
            members = tuple(self._rooms.get(room, {}))
            for handle in members:
                self._unlink(room, handle)
            return members

    # -------- queries --------
    async def members_of(self, room: Room) -> Tuple[str, ...]:
        """Snapshot of the handles in a room, in join order."""
        async with self._lock:
            return tuple(self._rooms.get(room, {}))

    async def rooms_of(self, handle: str) -> FrozenSet[Room]:
        async with self._lock:
            return frozenset(self._memberships.get(handle, set()))

    async def snapshot(self, room: Room) -> List[Connection]:
        """Live connections currently in a room, resolved under the lock."""
        async with self._lock:
            return [
                self._connections[h]
                for h in self._rooms.get(room, {})
                if h in self._connections
            ]

    def __contains__(self, room: Room) -> bool:
        return room in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def _discard(self, room: Room, handle: str) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.pop(handle, None)
        if not members:
            del self._rooms[room]

    def _unlink(self, room: Room, handle: str) -> None:
        # Caller holds the lock
        self._discard(room, handle)
        rooms = self._memberships.get(handle)
        if rooms is not None:
            rooms.discard(room)
            if not rooms:
                del self._memberships[handle]
