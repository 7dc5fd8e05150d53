# app/services/chat_views.py
"""
Serializers that turn Chat / Message rows into the JSON documents returned
by the REST API and pushed over the socket.

Both shapes embed users through User.public(), so password hashes never
leave the database layer.
"""
from app.models.chat import Chat
from app.models.message import Message


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def message_payload(message: Message) -> dict:
    """Message document. ``message.sender`` must already be fetched."""
    return {
        "id": str(message.id),
        "chat": str(message.chat_id),
        "sender": message.sender.public(),
        "content": message.content,
        "attachments": message.attachments or [],
        "createdAt": _iso(message.created_at),
    }


async def chat_payload(chat: Chat) -> dict:
    """
    Chat document with participants and the last message expanded.
    """
    await chat.fetch_related("participants")
    last = None
    if chat.last_message_id:
        msg = await Message.get_or_none(id=chat.last_message_id).prefetch_related("sender")
        if msg:
            last = message_payload(msg)
    return {
        "id": str(chat.id),
        "name": chat.name,
        "isGroupChat": chat.is_group_chat,
        "admin": str(chat.admin_id),
        "participants": [u.public() for u in chat.participants],
        "lastMessage": last,
        "createdAt": _iso(chat.created_at),
        "updatedAt": _iso(chat.updated_at),
    }


def participant_ids(payload: dict) -> list[str]:
    return [p["id"] for p in payload["participants"]]
