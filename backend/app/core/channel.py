# app/core/channel.py
"""
Per-connection event channel.

Wraps a WebSocket-like transport (anything with ``send_text``,
``receive_text`` and ``close``) and speaks JSON frames of the form
``{"event": "<name>", "data": <payload>}``:

- ``on(event, handler)`` registers an inbound handler
- ``emit(event, payload)`` writes one frame to this connection
- ``listen()`` reads frames until the peer goes away or sends ``disconnect``

Errors raised by a handler are caught here and reported back to this
connection only, as a ``socketError`` event.
"""
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Tuple

from fastapi.encoders import jsonable_encoder
from starlette.websockets import WebSocketDisconnect

from app.core.errors import BadEvent, DeliveryFailure, RealtimeError
from app.core.events import INBOUND_EVENTS, ChatEvent, make_frame

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[None]]


class EventChannel:
    def __init__(self, transport, handle: str):
        self._transport = transport
        self.handle = handle
        self._handlers: Dict[str, Handler] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def on(self, event: ChatEvent | str, handler: Handler) -> None:
        name = event.value if isinstance(event, ChatEvent) else event
        self._handlers[name] = handler

    async def emit(self, event: ChatEvent | str, payload: Any = None) -> None:
        """
        Send one event to this connection.

        Raises:
            DeliveryFailure: if the channel is closed or the transport write fails
        """
        if self._closed:
            raise DeliveryFailure(f"Connection {self.handle} is closed.")
        msg = json.dumps(jsonable_encoder(make_frame(event, payload)))
        try:
            await self._transport.send_text(msg)
        except Exception as e:
            raise DeliveryFailure(f"Connection {self.handle} unreachable: {e!r}") from e

    async def listen(self) -> None:
        """Dispatch inbound frames until the client disconnects."""
        while True:
            try:
                raw = await self._transport.receive_text()
            except WebSocketDisconnect:
                # Peer already closed the socket, nothing left to close
                self._closed = True
                return

            try:
                event, data = self._parse(raw)
            except BadEvent as exc:
                await self.report(exc)
                continue

            if event == ChatEvent.DISCONNECT.value:
                return

            handler = self._handlers.get(event) if event in INBOUND_EVENTS else None
            if handler is None:
                logger.debug("[channel] %s sent unhandled event %r", self.handle, event)
                continue
            await self._invoke(event, handler, data)

    async def _invoke(self, event: str, handler: Handler, data: Any) -> None:
        try:
            await handler(data)
        except RealtimeError as exc:
            logger.info("[channel] %s %s rejected: %s", self.handle, event, exc.message)
            await self.report(exc)
        except Exception as exc:
            logger.exception("[channel] %s handler for %s failed", self.handle, event)
            # Internal error text stays in the server log
            await self.report(RealtimeError())

    async def report(self, exc: RealtimeError) -> None:
        """Send a socketError to this connection; a dead transport is only logged."""
        try:
            await self.emit(ChatEvent.SOCKET_ERROR, exc.as_payload())
        except DeliveryFailure as e:
            logger.debug("[channel] could not report error to %s: %s", self.handle, e.message)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._transport.close(code=code, reason=reason)
        except RuntimeError as e:
            # Starlette raises once the close handshake has already happened
            logger.debug("[channel] close on %s ignored: %r", self.handle, e)

    @staticmethod
    def _parse(raw: str) -> Tuple[str, Any]:
        try:
            msg = json.loads(raw)
        except (TypeError, ValueError):
            raise BadEvent("Socket events must be JSON objects.")
        if not isinstance(msg, dict) or not isinstance(msg.get("event"), str):
            raise BadEvent("Socket events need an 'event' name.")
        return msg["event"], msg.get("data")
