# app/models/chat.py
"""
Database model for chats (one-to-one or group conversations).
"""
import uuid
from tortoise import fields, models

class Chat(models.Model):
    """
    Chat database model.

    A one-to-one chat has exactly two participants and is_group_chat=False.
    A group chat has at least three participants at creation time and an
    admin who may rename it, delete it and manage participants.

    Relationships:
    - Many participants (many-to-many with User)
    - One admin (many-to-one with User)
    - Many messages (one-to-many, via related_name in Message model)
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    name = fields.CharField(max_length=256)
    is_group_chat = fields.BooleanField(default=False)
    admin = fields.ForeignKeyField("models.User", related_name="admin_chats", on_delete=fields.CASCADE)
    participants = fields.ManyToManyField("models.User", related_name="chats", through="chat_participants")
    # Plain id rather than a FK to avoid a chats <-> messages cycle
    last_message_id = fields.UUIDField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "chats"
