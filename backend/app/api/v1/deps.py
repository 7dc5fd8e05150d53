from fastapi import Depends, Header, HTTPException, Request, status
from app.config import settings
from app.core.pubsub import Dispatcher
from app.core.realtime import Realtime
from app.core.security import decode_access_token
from app.models.user import User

async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
):
    """
    FastAPI dependency to get the current authenticated user.

    This dependency extracts and validates the JWT token from either:
    1. Authorization header (Bearer token) - preferred method
    2. HttpOnly cookie (accessToken) - fallback method

    Returns:
        User: The authenticated user object from database

    Raises:
        HTTPException (401): If no token is provided (AUTH_REQUIRED)
        HTTPException (401): If token is invalid or expired (AUTH_INVALID_TOKEN)
        HTTPException (401): If user not found in database (AUTH_USER_NOT_FOUND)
    """
    token = None
    # 1) Prioritize Authorization: Bearer xxx
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    # 2) Secondly HttpOnly Cookie
    if not token:
        token = request.cookies.get(settings.access_cookie_name)

    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_REQUIRED")

    try:
        payload = decode_access_token(token)
        user_id: str = payload.get("sub")
    except Exception:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_INVALID_TOKEN")

    try:
        user = await User.get_or_none(id=user_id)
    except (ValueError, TypeError):
        user = None
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_USER_NOT_FOUND")
    return user

def get_realtime(request: Request) -> Realtime:
    """The Realtime instance created at startup (see app.main)."""
    return request.app.state.realtime

def get_dispatcher(realtime: Realtime = Depends(get_realtime)) -> Dispatcher:
    """
    FastAPI dependency for write-path routes that notify sockets.

    Usage:
        @router.post("/{chat_id}")
        async def send(..., dispatcher: Dispatcher = Depends(get_dispatcher)):
            ...  # commit first, then
            await dispatcher.broadcast(Room.chat(chat_id), ChatEvent.MESSAGE_RECEIVED, payload)
    """
    return realtime.dispatcher
