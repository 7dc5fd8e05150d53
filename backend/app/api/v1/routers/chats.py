# app/api/v1/routers/chats.py
"""
Chat routes (one-to-one and group).

Every route that changes a chat commits first and then notifies the affected
users through the socket dispatcher. Chat-level notifications go to personal
rooms (user:<id>), because the recipients may not have opened the chat yet.
"""
from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from app.api.v1.deps import get_current_user, get_realtime
from app.api.v1.guards import (
    get_chat, get_user, http_error, is_participant, parse_id, require_admin, require_participant,
)
from app.core.events import ChatEvent, Room
from app.core.realtime import Realtime
from app.models.chat import Chat
from app.models.message import Message
from app.models.user import User
from app.services.chat_views import chat_payload, participant_ids

router = APIRouter(prefix="/chats", tags=["chats"])

# ===== Schemas =====
class CreateGroupIn(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    participants: list[str]

class RenameGroupIn(BaseModel):
    name: str = Field(min_length=1, max_length=256)

# ===== Routes =====
@router.get("")
async def list_chats(user: User = Depends(get_current_user)):
    """All chats the user takes part in, most recently updated first."""
    chats = await Chat.filter(participants__id=user.id).order_by("-updated_at").distinct()
    return {"success": True, "data": [await chat_payload(c) for c in chats]}

@router.get("/users")
async def search_available_users(user: User = Depends(get_current_user)):
    """Every other user, as candidates for a new chat."""
    users = await User.exclude(id=user.id).order_by("username")
    return {"success": True, "data": [u.public() for u in users]}

@router.post("/c/{receiver_id}")
async def create_or_access_one_to_one_chat(
    receiver_id: str,
    response: Response,
    user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
):
    """
    Return the one-to-one chat between the caller and receiver, creating it
    if needed.

    Returns:
        200 with the existing chat, or 201 with the new chat (the receiver
        gets a newChat event)

    Raises:
        HTTPException (400): CHAT_WITH_SELF
        HTTPException (404): USER_NOT_FOUND
    """
    if str(receiver_id) == str(user.id):
        raise http_error(status.HTTP_400_BAD_REQUEST, "CHAT_WITH_SELF", "You cannot chat with yourself.")
    receiver = await get_user(receiver_id, "Receiver not found.")

    receiver_chat_ids = await Chat.filter(
        is_group_chat=False, participants__id=receiver.id
    ).values_list("id", flat=True)
    existing = await Chat.filter(id__in=list(receiver_chat_ids), participants__id=user.id).first()
    if existing:
        return {"success": True, "data": await chat_payload(existing)}

    chat = await Chat.create(name="One-to-one Chat", is_group_chat=False, admin=user)
    await chat.participants.add(user, receiver)
    payload = await chat_payload(chat)

    await realtime.dispatcher.notify_users(
        participant_ids(payload), ChatEvent.NEW_CHAT, payload, skip_user=user.id
    )
    response.status_code = status.HTTP_201_CREATED
    return {"success": True, "data": payload}

@router.post("/group", status_code=status.HTTP_201_CREATED)
async def create_group_chat(
    body: CreateGroupIn,
    user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
):
    """
    Create a group chat administered by the caller.

    Raises:
        HTTPException (400): GROUP_SELF_LISTED if the caller lists themself
        HTTPException (400): GROUP_TOO_SMALL if fewer than 3 members in total
        HTTPException (404): USER_NOT_FOUND if a participant does not exist
    """
    # Canonical UUIDs, so different spellings of one id count once
    ids = list(dict.fromkeys(
        parse_id(p, "USER_NOT_FOUND", "Participant not found.") for p in body.participants
    ))
    if str(user.id) in {str(i) for i in ids}:
        raise http_error(status.HTTP_400_BAD_REQUEST, "GROUP_SELF_LISTED",
                         "You don't have to add yourself to the group chat.")
    if len(ids) + 1 < 3:
        raise http_error(status.HTTP_400_BAD_REQUEST, "GROUP_TOO_SMALL",
                         "Group chat should have at least 3 members.")
    members = await User.filter(id__in=ids)
    if len(members) != len(ids):
        raise http_error(status.HTTP_404_NOT_FOUND, "USER_NOT_FOUND", "Participant not found.")

    chat = await Chat.create(name=body.name.strip(), is_group_chat=True, admin=user)
    await chat.participants.add(user, *members)
    payload = await chat_payload(chat)

    await realtime.dispatcher.notify_users(
        participant_ids(payload), ChatEvent.NEW_CHAT, payload, skip_user=user.id
    )
    return {"success": True, "data": payload}

@router.get("/group/{chat_id}")
async def get_group_chat_details(chat_id: str, user: User = Depends(get_current_user)):
    chat = await get_chat(chat_id, group=True)
    await require_participant(chat, user)
    return {"success": True, "data": await chat_payload(chat)}

@router.patch("/group/{chat_id}")
async def rename_group_chat(
    chat_id: str,
    body: RenameGroupIn,
    user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
):
    """
    Rename a group chat (admin only). Every participant, the admin included,
    receives updateGroupName.
    """
    chat = await get_chat(chat_id, group=True)
    require_admin(chat, user, "rename this group chat")
    chat.name = body.name.strip()
    await chat.save()
    payload = await chat_payload(chat)

    await realtime.dispatcher.notify_users(participant_ids(payload), ChatEvent.UPDATE_GROUP_NAME, payload)
    return {"success": True, "data": payload}

@router.delete("/group/{chat_id}")
async def delete_group_chat(
    chat_id: str,
    user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
):
    """Delete a group chat and its messages (admin only)."""
    chat = await get_chat(chat_id, group=True)
    require_admin(chat, user, "delete this group chat")
    payload = await _delete_chat(chat)

    await realtime.dispatcher.notify_users(
        participant_ids(payload), ChatEvent.LEAVE_CHAT, payload, skip_user=user.id
    )
    await realtime.registry.close_room(Room.chat(payload["id"]))
    return {"success": True, "data": {}}

@router.delete("/remove/{chat_id}")
async def delete_one_to_one_chat(
    chat_id: str,
    user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
):
    """Delete a one-to-one chat the caller takes part in."""
    chat = await get_chat(chat_id, group=False)
    if not await is_participant(chat, user.id):
        raise http_error(status.HTTP_404_NOT_FOUND, "CHAT_NOT_FOUND", "Chat does not exist.")
    payload = await _delete_chat(chat)

    await realtime.dispatcher.notify_users(
        participant_ids(payload), ChatEvent.LEAVE_CHAT, payload, skip_user=user.id
    )
    await realtime.registry.close_room(Room.chat(payload["id"]))
    return {"success": True, "data": {}}

@router.delete("/leave/group/{chat_id}")
async def leave_group_chat(
    chat_id: str,
    user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
):
    """
    Leave a group chat.

    The leaver's sockets are removed from the chat room. The remaining
    participants and the leaver's own other sessions receive leaveChat with
    the updated chat (participants no longer include the leaver).
    """
    chat = await get_chat(chat_id, group=True)
    if not await is_participant(chat, user.id):
        raise http_error(status.HTTP_400_BAD_REQUEST, "NOT_A_PARTICIPANT", "You are not part of this group chat.")
    await chat.participants.remove(user)
    await chat.save()
    payload = await chat_payload(chat)

    await realtime.registry.leave_user(Room.chat(payload["id"]), user.id)
    await realtime.dispatcher.notify_users(
        participant_ids(payload) + [str(user.id)], ChatEvent.LEAVE_CHAT, payload
    )
    return {"success": True, "data": payload}

@router.post("/group/{chat_id}/{participant_id}")
async def add_participant_in_group_chat(
    chat_id: str,
    participant_id: str,
    user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
):
    """Add a participant (admin only); the new participant receives newChat."""
    chat = await get_chat(chat_id, group=True)
    require_admin(chat, user, "add participants")
    participant = await get_user(participant_id, "Participant not found.")
    if await is_participant(chat, participant.id):
        raise http_error(status.HTTP_400_BAD_REQUEST, "ALREADY_PARTICIPANT",
                         "Participant already exists in group chat.")
    await chat.participants.add(participant)
    await chat.save()
    payload = await chat_payload(chat)

    await realtime.dispatcher.broadcast(Room.user(participant.id), ChatEvent.NEW_CHAT, payload)
    return {"success": True, "data": payload}

@router.delete("/group/{chat_id}/{participant_id}")
async def remove_participant_from_group_chat(
    chat_id: str,
    participant_id: str,
    user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
):
    """
    Remove a participant (admin only). The removed user receives leaveChat
    and their sockets are removed from the chat room.
    """
    chat = await get_chat(chat_id, group=True)
    require_admin(chat, user, "remove participants")
    participant = await get_user(participant_id, "Participant not found.")
    if not await is_participant(chat, participant.id):
        raise http_error(status.HTTP_400_BAD_REQUEST, "NOT_A_PARTICIPANT",
                         "Participant does not exist in the group chat.")
    await chat.participants.remove(participant)
    await chat.save()
    payload = await chat_payload(chat)

    await realtime.registry.leave_user(Room.chat(payload["id"]), participant.id)
    await realtime.dispatcher.broadcast(Room.user(participant.id), ChatEvent.LEAVE_CHAT, payload)
    return {"success": True, "data": payload}

async def _delete_chat(chat: Chat) -> dict:
    """Delete a chat with its messages; returns the chat as it was."""
    payload = await chat_payload(chat)
    await Message.filter(chat_id=chat.id).delete()
    await chat.participants.clear()
    await chat.delete()
    return payload
