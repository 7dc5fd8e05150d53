# app/core/connection.py
"""
A single live socket connection and its lifecycle state.

State machine:
    CONNECTING -> AUTHENTICATED -> ACTIVE -> CLOSED
    CONNECTING -> CLOSED                     (handshake failed)
"""
import uuid
from enum import Enum
from typing import Optional

from app.core.channel import EventChannel
from app.core.errors import IllegalTransition
from app.core.identity import Identity


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    ACTIVE = "active"
    CLOSED = "closed"


_ALLOWED = {
    ConnectionState.CONNECTING: {ConnectionState.AUTHENTICATED, ConnectionState.CLOSED},
    ConnectionState.AUTHENTICATED: {ConnectionState.ACTIVE, ConnectionState.CLOSED},
    ConnectionState.ACTIVE: {ConnectionState.CLOSED},
    ConnectionState.CLOSED: set(),
}


def new_handle() -> str:
    return uuid.uuid4().hex


class Connection:
    def __init__(self, transport, handle: Optional[str] = None):
        self.handle = handle or new_handle()
        self.channel = EventChannel(transport, self.handle)
        self.identity: Optional[Identity] = None
        self.state = ConnectionState.CONNECTING

    @property
    def user_id(self) -> Optional[str]:
        return self.identity.id if self.identity else None

    def authenticate(self, identity: Identity) -> None:
        self._transition(ConnectionState.AUTHENTICATED)
        self.identity = identity

    def activate(self) -> None:
        self._transition(ConnectionState.ACTIVE)

    def mark_closed(self) -> None:
        if self.state is not ConnectionState.CLOSED:
            self._transition(ConnectionState.CLOSED)

    def _transition(self, target: ConnectionState) -> None:
        if target not in _ALLOWED[self.state]:
            raise IllegalTransition(f"{self.state.value} -> {target.value} is not allowed")
        self.state = target

    def __repr__(self) -> str:
        return f"<Connection {self.handle} user={self.user_id} state={self.state.value}>"
