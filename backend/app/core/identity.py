# app/core/identity.py
"""
Authenticated identity attached to a socket connection, and the lookup
contract the handshake uses to resolve a token subject into one.
"""
from typing import Optional, Protocol

from pydantic import BaseModel


class Identity(BaseModel):
    """
    Public view of a user. Never carries the password hash or any other
    credential material.
    """
    id: str
    username: str
    email: Optional[str] = None
    avatar: Optional[str] = None


class IdentityStore(Protocol):
    async def find_by_id(self, subject: str) -> Optional[Identity]:
        """Return the identity for a token subject, or None if it does not exist."""
        ...
