# app/api/v1/guards.py
"""
Lookup helpers shared by the chat and message routers. Each one either
returns the row or raises the HTTPException the route should answer with.
"""
import uuid
from fastapi import HTTPException, status
from app.models.chat import Chat
from app.models.user import User

def http_error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"code": code, "message": message})

def parse_id(value: str, code: str = "NOT_FOUND", message: str = "Not found") -> uuid.UUID:
    # Malformed ids can never match a row, so they are reported as missing
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise http_error(status.HTTP_404_NOT_FOUND, code, message)

async def get_chat(chat_id: str, *, group: bool | None = None) -> Chat:
    """
    Fetch a chat by id.

    Args:
        group: True to only accept group chats, False for one-to-one only,
            None for either

    Raises:
        HTTPException (404): CHAT_NOT_FOUND
    """
    message = "Group chat not found." if group else "Chat does not exist."
    cid = parse_id(chat_id, "CHAT_NOT_FOUND", message)
    qs = Chat.filter(id=cid)
    if group is not None:
        qs = qs.filter(is_group_chat=group)
    chat = await qs.first()
    if not chat:
        raise http_error(status.HTTP_404_NOT_FOUND, "CHAT_NOT_FOUND", message)
    return chat

async def get_user(user_id: str, message: str = "User not found.") -> User:
    uid = parse_id(user_id, "USER_NOT_FOUND", message)
    user = await User.get_or_none(id=uid)
    if not user:
        raise http_error(status.HTTP_404_NOT_FOUND, "USER_NOT_FOUND", message)
    return user

async def is_participant(chat: Chat, user_id) -> bool:
    return await chat.participants.filter(id=user_id).exists()

async def require_participant(chat: Chat, user: User) -> None:
    """Raises HTTPException (403) CHAT_FORBIDDEN when user is not in the chat."""
    if not await is_participant(chat, user.id):
        raise http_error(status.HTTP_403_FORBIDDEN, "CHAT_FORBIDDEN", "User is not a part of this chat.")

def require_admin(chat: Chat, user: User, action: str) -> None:
    """Raises HTTPException (403) CHAT_ADMIN_ONLY unless user administers the chat."""
    if str(chat.admin_id) != str(user.id):
        raise http_error(status.HTTP_403_FORBIDDEN, "CHAT_ADMIN_ONLY", f"You are not authorized to {action}.")
