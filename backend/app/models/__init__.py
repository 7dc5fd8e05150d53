# app/models/__init__.py
"""
Database models module initialization.
Exports all Tortoise ORM models for convenient imports.

Models exported:
- User: User account and authentication model
- Chat: One-to-one or group conversation
- Message: Message posted to a chat
"""
from .user import User
from .chat import Chat
from .message import Message
