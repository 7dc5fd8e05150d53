# app/core/events.py
"""
Event names and room identifiers shared by the socket layer and the REST
write path.

Wire frames look like ``{"event": "<name>", "data": <payload>}``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ChatEvent(str, Enum):
    CONNECTED = "connected"
    DISCONNECT = "disconnect"
    JOIN_CHAT = "joinChat"
    LEAVE_CHAT = "leaveChat"
    UPDATE_GROUP_NAME = "updateGroupName"
    MESSAGE_RECEIVED = "messageReceived"
    NEW_CHAT = "newChat"
    SOCKET_ERROR = "socketError"
    TYPING_START = "typing"
    TYPING_STOP = "stopTyping"
    MESSAGE_DELETE = "messageDeleted"


# Wire names of the events a client is allowed to send
INBOUND_EVENTS = frozenset(e.value for e in (
    ChatEvent.JOIN_CHAT,
    ChatEvent.TYPING_START,
    ChatEvent.TYPING_STOP,
    ChatEvent.DISCONNECT,
))


class RoomKind(str, Enum):
    CHAT = "chat"
    USER = "user"


@dataclass(frozen=True)
class Room:
    """
    Registry key. Chat rooms and per-user rooms live in separate namespaces,
    so a chat id can never collide with a user id.
    """
    kind: RoomKind
    id: str

    @classmethod
    def chat(cls, chat_id: Any) -> "Room":
        return cls(RoomKind.CHAT, str(chat_id))

    @classmethod
    def user(cls, user_id: Any) -> "Room":
        return cls(RoomKind.USER, str(user_id))

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


def make_frame(event: ChatEvent | str, payload: Any = None) -> dict:
    """Build the outbound frame for an event."""
    name = event.value if isinstance(event, ChatEvent) else str(event)
    return {"event": name, "data": payload}
