# app/core/lifecycle.py
"""
Connection lifecycle: handshake, inbound event handlers, teardown.

    serve(transport, ctx)
      CONNECTING     authenticate (bounded by handshake_timeout)
        | fail  ->   emit socketError, close(1008)           -> CLOSED
      AUTHENTICATED  attach to registry, join user:<id> room, mount handlers
      ACTIVE         emit connected, dispatch inbound events
        | disconnect event / transport closed
      CLOSED         detach from registry (all rooms at once), close transport
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from app.core.connection import Connection, ConnectionState
from app.core.errors import AuthUnavailable, BadEvent, ForbiddenRoom, HandshakeError, Unauthorized
from app.core.events import ChatEvent, Room
from app.core.handshake import HandshakeContext, SessionAuthenticator
from app.core.pubsub import Dispatcher
from app.core.registry import RoomRegistry

logger = logging.getLogger(__name__)

# (user_id, chat_id) -> may this user subscribe to the chat room?
ParticipantCheck = Callable[[str, str], Awaitable[bool]]

WS_POLICY_VIOLATION = 1008


class LifecycleTracker:
    def __init__(
        self,
        authenticator: SessionAuthenticator,
        registry: RoomRegistry,
        dispatcher: Dispatcher,
        *,
        handshake_timeout: float = 10.0,
        participant_check: Optional[ParticipantCheck] = None,
    ):
        self._authenticator = authenticator
        self._registry = registry
        self._dispatcher = dispatcher
        self._handshake_timeout = handshake_timeout
        self._participant_check = participant_check

    async def serve(self, transport, ctx: HandshakeContext) -> Connection:
        """
        Run one connection from handshake to teardown. The transport must
        already be accepted. Returns the (closed) connection.
        """
        connection = Connection(transport)
        try:
            if not await self._handshake(connection, ctx):
                return connection
            await self._activate(connection)
            await connection.channel.listen()
        finally:
            await self._teardown(connection)
        return connection

    async def _handshake(self, connection: Connection, ctx: HandshakeContext) -> bool:
        try:
            identity = await asyncio.wait_for(
                self._authenticator.authenticate(ctx), timeout=self._handshake_timeout
            )
        except asyncio.TimeoutError:
            await self._reject(connection, Unauthorized("Unauthorized handshake. Authentication timed out."))
            return False
        except HandshakeError as exc:
            await self._reject(connection, exc)
            return False
        except Exception:
            logger.exception("[lifecycle] handshake for %s failed unexpectedly", connection.handle)
            await self._reject(connection, AuthUnavailable())
            return False
        connection.authenticate(identity)
        return True

    async def _reject(self, connection: Connection, exc: HandshakeError) -> None:
        logger.info("[lifecycle] handshake rejected (%s): %s", exc.code, exc.message)
        await connection.channel.report(exc)
        await connection.channel.close(code=WS_POLICY_VIOLATION, reason=exc.code)
        connection.mark_closed()

    async def _activate(self, connection: Connection) -> None:
        await self._registry.attach(connection)
        await self._registry.join(Room.user(connection.user_id), connection.handle)
        self._mount_handlers(connection)
        connection.activate()
        await connection.channel.emit(ChatEvent.CONNECTED)
        logger.info("[lifecycle] user connected: user=%s handle=%s",
                    connection.user_id, connection.handle)

    def _mount_handlers(self, connection: Connection) -> None:
        async def join_chat(data: Any) -> None:
            chat_id = _chat_id(data)
            if self._participant_check is not None and not await self._participant_check(
                connection.user_id, chat_id
            ):
                raise ForbiddenRoom()
            await self._registry.join(Room.chat(chat_id), connection.handle)
            logger.info("[lifecycle] user %s joined chat %s", connection.user_id, chat_id)
            await connection.channel.emit(ChatEvent.JOIN_CHAT, chat_id)

        def relay(event: ChatEvent):
            async def handler(data: Any) -> None:
                chat_id = _chat_id(data)
                room = Room.chat(chat_id)
                # Only members of the chat room may signal into it
                if room not in await self._registry.rooms_of(connection.handle):
                    logger.debug("[lifecycle] %s from %s ignored, not in %s",
                                 event.value, connection.handle, room)
                    return
                await self._dispatcher.broadcast(room, event, chat_id, exclude=connection.handle)
            return handler

        connection.channel.on(ChatEvent.JOIN_CHAT, join_chat)
        connection.channel.on(ChatEvent.TYPING_START, relay(ChatEvent.TYPING_START))
        connection.channel.on(ChatEvent.TYPING_STOP, relay(ChatEvent.TYPING_STOP))

    async def _teardown(self, connection: Connection) -> None:
        if connection.state is ConnectionState.CLOSED:
            return
        rooms = await self._registry.detach(connection.handle)
        await connection.channel.close()
        connection.mark_closed()
        logger.info("[lifecycle] user disconnected: user=%s handle=%s rooms=%d",
                    connection.user_id, connection.handle, len(rooms))


def _chat_id(data: Any) -> str:
    # Clients send either the bare id or {"chatId": "..."}
    if isinstance(data, dict):
        data = data.get("chatId")
    if isinstance(data, (str, int)) and str(data).strip():
        return str(data).strip()
    raise BadEvent("A chat id is required.")
