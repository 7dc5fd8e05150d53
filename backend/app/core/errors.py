# app/core/errors.py
"""
Exceptions raised by the real-time core.

Handshake failures carry a machine-readable ``code`` (same vocabulary as the
REST auth dependency) and a human-readable message; both are sent to the
client in the ``socketError`` event before the connection is closed.
"""


class RealtimeError(Exception):
    """Base class for all real-time errors."""
    code = "SOCKET_ERROR"
    default_message = "Something went wrong while handling the socket event."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_payload(self) -> dict:
        return {"code": self.code, "message": self.message}


class HandshakeError(RealtimeError):
    """Any failure that must terminate the connection during the handshake."""


class Unauthorized(HandshakeError):
    code = "AUTH_REQUIRED"
    default_message = "Unauthorized handshake. Token missing."


class InvalidToken(HandshakeError):
    code = "AUTH_INVALID_TOKEN"
    default_message = "Unauthorized handshake. Token invalid or expired."


class IdentityNotFound(HandshakeError):
    code = "AUTH_USER_NOT_FOUND"
    default_message = "Unauthenticated handshake. User not found."


class AuthUnavailable(HandshakeError):
    """The credential could not be checked (verifier or identity store failed)."""
    code = "AUTH_UNAVAILABLE"
    default_message = "Unable to verify the session right now."


class DeliveryFailure(RealtimeError):
    """A single connection could not be written to (usually already closed)."""
    code = "DELIVERY_FAILED"
    default_message = "Could not deliver event to connection."


class BadEvent(RealtimeError):
    """Inbound frame is not valid JSON or has no event name."""
    code = "BAD_EVENT"
    default_message = "Malformed socket event."


class ForbiddenRoom(RealtimeError):
    code = "CHAT_FORBIDDEN"
    default_message = "You are not a participant of this chat."


class IllegalTransition(RealtimeError):
    code = "ILLEGAL_STATE"
    default_message = "Illegal connection state transition."
