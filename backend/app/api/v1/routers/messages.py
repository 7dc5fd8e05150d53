# app/api/v1/routers/messages.py
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from app.api.v1.deps import get_current_user, get_dispatcher
from app.api.v1.guards import get_chat, http_error, is_participant, parse_id, require_participant
from app.core.events import ChatEvent, Room
from app.core.pubsub import Dispatcher
from app.models.chat import Chat
from app.models.message import Message
from app.models.user import User
from app.services.chat_views import message_payload

router = APIRouter(prefix="/messages", tags=["messages"])

# ===== Schemas =====
class AttachmentIn(BaseModel):
    url: str = Field(min_length=1, max_length=1024)

class SendMessageIn(BaseModel):
    content: str | None = None
    attachments: list[AttachmentIn] = []

# ===== Routes =====
@router.get("/{chat_id}")
async def get_all_messages(chat_id: str, user: User = Depends(get_current_user)):
    """
    Messages of a chat, newest first.

    Raises:
        HTTPException (404): CHAT_NOT_FOUND
        HTTPException (403): CHAT_FORBIDDEN if the caller is not a participant
    """
    chat = await get_chat(chat_id)
    await require_participant(chat, user)
    rows = await Message.filter(chat_id=chat.id).order_by("-created_at").prefetch_related("sender")
    return {"success": True, "data": [message_payload(m) for m in rows]}

@router.post("/{chat_id}", status_code=status.HTTP_201_CREATED)
async def send_message(
    chat_id: str,
    body: SendMessageIn,
    user: User = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """
    Post a message to a chat.

    The message is stored and set as the chat's last message before the
    other participants receive messageReceived, on their personal rooms and
    on the chat room. Each socket gets it once; the sender's are skipped.

    Raises:
        HTTPException (400): MESSAGE_EMPTY if neither content nor attachments
        HTTPException (404): CHAT_NOT_FOUND
        HTTPException (403): CHAT_FORBIDDEN
    """
    content = (body.content or "").strip()
    if not content and not body.attachments:
        raise http_error(status.HTTP_400_BAD_REQUEST, "MESSAGE_EMPTY",
                         "Message content or attachment is required.")
    chat = await get_chat(chat_id)
    await require_participant(chat, user)

    message = await Message.create(
        chat=chat,
        sender=user,
        content=content,
        attachments=[a.model_dump() for a in body.attachments],
    )
    chat.last_message_id = message.id
    await chat.save()
    await message.fetch_related("sender")
    payload = message_payload(message)

    await dispatcher.broadcast_rooms(
        await _audience(chat), ChatEvent.MESSAGE_RECEIVED, payload, exclude_user=user.id
    )
    return {"success": True, "data": payload}

@router.delete("/{chat_id}/{message_id}")
async def delete_message(
    chat_id: str,
    message_id: str,
    user: User = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """
    Delete one of the caller's own messages.

    Raises:
        HTTPException (404): CHAT_NOT_FOUND / MESSAGE_NOT_FOUND
        HTTPException (403): MESSAGE_NOT_SENDER
    """
    chat = await get_chat(chat_id)
    if not await is_participant(chat, user.id):
        raise http_error(status.HTTP_404_NOT_FOUND, "CHAT_NOT_FOUND", "Chat does not exist.")
    mid = parse_id(message_id, "MESSAGE_NOT_FOUND", "Message does not exist.")
    message = await Message.get_or_none(id=mid, chat_id=chat.id).prefetch_related("sender")
    if not message:
        raise http_error(status.HTTP_404_NOT_FOUND, "MESSAGE_NOT_FOUND", "Message does not exist.")
    if str(message.sender_id) != str(user.id):
        raise http_error(status.HTTP_403_FORBIDDEN, "MESSAGE_NOT_SENDER",
                         "You are not authorised to delete the message, you are not the sender.")

    payload = message_payload(message)
    await message.delete()
    if chat.last_message_id == message.id:
        latest = await Message.filter(chat_id=chat.id).order_by("-created_at").first()
        chat.last_message_id = latest.id if latest else None
        await chat.save()

    await dispatcher.broadcast_rooms(
        await _audience(chat), ChatEvent.MESSAGE_DELETE, payload, exclude_user=user.id
    )
    return {"success": True, "data": payload}

async def _audience(chat: Chat) -> list[Room]:
    """The chat room plus the personal room of every participant."""
    user_ids = await chat.participants.all().values_list("id", flat=True)
    return [Room.chat(chat.id)] + [Room.user(uid) for uid in user_ids]
