# app/core/handshake.py
"""
Socket handshake authentication.

A connecting client can present its access token in two places:
1. the HttpOnly ``accessToken`` cookie set by /auth/login (preferred)
2. an explicit token field, the ``token`` query parameter of the socket URL

The token is verified with the shared JWT secret and its subject is resolved
through an IdentityStore.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import jwt  # PyJWT
from starlette.requests import cookie_parser

from app.core.errors import IdentityNotFound, InvalidToken, Unauthorized
from app.core.identity import Identity, IdentityStore
from app.core.security import JWT_SECRET, decode_access_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandshakeContext:
    cookie_header: Optional[str] = None
    auth_token: Optional[str] = None


class SessionAuthenticator:
    def __init__(
        self,
        identity_store: IdentityStore,
        *,
        secret: str = JWT_SECRET,
        cookie_name: str = "accessToken",
        verifier: Callable[[str, str], dict] = decode_access_token,
    ):
        self.identity_store = identity_store
        self._secret = secret
        self._cookie_name = cookie_name
        self._verify = verifier

    def extract_token(self, ctx: HandshakeContext) -> Optional[str]:
        cookies = cookie_parser(ctx.cookie_header or "")
        token = cookies.get(self._cookie_name)
        if not token:
            token = (ctx.auth_token or "").strip() or None
        return token

    async def authenticate(self, ctx: HandshakeContext) -> Identity:
        """
        Resolve the identity behind a handshake.

        Raises:
            Unauthorized: no token in cookie or auth field
            InvalidToken: bad signature, expired, or no subject
            IdentityNotFound: token is valid but the user does not exist
        """
        token = self.extract_token(ctx)
        if not token:
            raise Unauthorized()

        try:
            payload = self._verify(token, self._secret)
        except jwt.PyJWTError as e:
            logger.info("[handshake] token rejected: %r", e)
            raise InvalidToken()

        subject = payload.get("sub")
        if not subject:
            raise InvalidToken("Unauthorized handshake. Token has no subject.")

        identity = await self.identity_store.find_by_id(str(subject))
        if identity is None:
            raise IdentityNotFound()
        return identity
