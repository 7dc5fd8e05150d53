# app/models/user.py
"""
Database model for users.
Represents a user account: login credentials plus the profile fields shown
next to messages (username, avatar).
"""
import uuid
from tortoise import fields, models

class User(models.Model):
    """
    User database model.

    Relationships:
    - Member of many Chats (many-to-many, via related_name="chats")
    - Admin of many Chats (via related_name="admin_chats")
    - Sender of many Messages (via related_name="messages")

    Security:
    - Password is stored as an argon2 hash, never plain text
    - Use public() when handing a user to anything outside the auth layer
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    username = fields.CharField(max_length=256, unique=True, index=True)
    email = fields.CharField(max_length=256, null=True, unique=True)
    avatar = fields.CharField(max_length=1024, null=True)  # Avatar URL
    password_hash = fields.CharField(max_length=255)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "users"

    def public(self) -> dict:
        """Profile fields that are safe to send to other users."""
        return {"id": str(self.id), "username": self.username, "email": self.email, "avatar": self.avatar}
