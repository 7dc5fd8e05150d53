# app/models/message.py
import uuid
from tortoise import fields, models

class Message(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    chat = fields.ForeignKeyField("models.Chat", related_name="messages", on_delete=fields.CASCADE)
    sender = fields.ForeignKeyField("models.User", related_name="messages", on_delete=fields.CASCADE)

    content = fields.TextField(default="")
    # [{"url": "..."}] - files live in external storage, only metadata is kept
    attachments = fields.JSONField(default=list)

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "messages"
