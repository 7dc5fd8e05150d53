# app/core/realtime.py
"""
Wiring for the real-time core.

One Realtime instance owns the registry and everything built on top of it.
main.py creates it and stores it on ``app.state.realtime``; tests build their
own with a fake identity store.
"""
from typing import Optional

from app.core.handshake import SessionAuthenticator
from app.core.identity import IdentityStore
from app.core.lifecycle import LifecycleTracker, ParticipantCheck
from app.core.pubsub import Dispatcher
from app.core.registry import RoomRegistry
from app.core.security import JWT_SECRET


class Realtime:
    def __init__(
        self,
        identity_store: IdentityStore,
        *,
        secret: str = JWT_SECRET,
        cookie_name: str = "accessToken",
        handshake_timeout: float = 10.0,
        send_timeout: float = 5.0,
        participant_check: Optional[ParticipantCheck] = None,
    ):
        self.registry = RoomRegistry()
        self.dispatcher = Dispatcher(self.registry, send_timeout=send_timeout)
        self.authenticator = SessionAuthenticator(
            identity_store, secret=secret, cookie_name=cookie_name
        )
        self.tracker = LifecycleTracker(
            self.authenticator,
            self.registry,
            self.dispatcher,
            handshake_timeout=handshake_timeout,
            participant_check=participant_check,
        )
