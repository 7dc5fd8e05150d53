# app/services/identity_store.py
"""
Database-backed lookups used by the socket core:
- TortoiseIdentityStore resolves a token subject to a public Identity
- is_chat_participant gates which chat rooms a connection may join
"""
import uuid
from typing import Optional

from app.core.identity import Identity
from app.models.chat import Chat
from app.models.user import User


def _as_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class TortoiseIdentityStore:
    async def find_by_id(self, subject: str) -> Optional[Identity]:
        uid = _as_uuid(subject)
        if uid is None:
            return None
        user = await User.get_or_none(id=uid)
        if user is None:
            return None
        # public() leaves out password_hash
        return Identity(**user.public())


async def is_chat_participant(user_id: str, chat_id: str) -> bool:
    uid, cid = _as_uuid(user_id), _as_uuid(chat_id)
    if uid is None or cid is None:
        return False
    return await Chat.filter(id=cid, participants__id=uid).exists()
