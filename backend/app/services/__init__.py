"""
Services Module

Database-backed helpers shared by the routers and the socket core:
- identity_store: token subject -> Identity, chat participant check
- chat_views: Chat / Message JSON documents
"""
from .identity_store import TortoiseIdentityStore, is_chat_participant
from .chat_views import chat_payload, message_payload, participant_ids

__all__ = [
    "TortoiseIdentityStore",
    "is_chat_participant",
    "chat_payload",
    "message_payload",
    "participant_ids",
]
