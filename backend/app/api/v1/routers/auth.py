# app/api/v1/routers/auth.py
from fastapi import APIRouter, HTTPException, Response, status, Depends
from pydantic import BaseModel
from app.config import settings
from app.core.security import verify_password, create_access_token, hash_password
from app.api.v1.deps import get_current_user
from app.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])

class LoginRequest(BaseModel):
    username: str
    password: str

class RegisterIn(BaseModel):
    username: str
    email: str | None = None
    password: str
    avatar: str | None = None

@router.post("/register")
async def register(body: RegisterIn):
    """
    Register a new user account.

    Username and email must be unique across all users. The password is
    hashed before storage.

    Returns:
        dict: Success response with the public user fields, or error response:
            - success: bool
            - data: dict with id, username, email, avatar (if success)
            - error: dict with error code and message (if failure)

    Error codes:
        - BAD_REQUEST: Missing username or password
        - USERNAME_EXISTS: Username already taken
        - EMAIL_EXISTS: Email already registered
    """
    if not body.username or not body.password:
        return {"success": False, "error": {"code": "BAD_REQUEST", "message": "username/password required"}}
    if await User.get_or_none(username=body.username):
        return {"success": False, "error": {"code": "USERNAME_EXISTS", "message": "Username already exists"}}
    if body.email and await User.get_or_none(email=body.email):
        return {"success": False, "error": {"code": "EMAIL_EXISTS", "message": "Email already registered"}}
    u = await User.create(
        username=body.username,
        email=(body.email or None),
        avatar=(body.avatar or None),
        password_hash=hash_password(body.password),
    )
    return {"success": True, "data": u.public()}

@router.post("/login")
async def login(payload: LoginRequest, response: Response):
    """
    Authenticate user and create access token.

    The token is returned in the body and also set as an HttpOnly cookie,
    which browsers then present automatically on REST calls and on the
    /ws/chat socket handshake.

    Raises:
        HTTPException (401): If credentials are invalid
    """
    user = await User.get_or_none(username=payload.username)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail={"code": "AUTH_INVALID_CREDENTIALS", "message": "Incorrect username or password"})
    token = create_access_token(str(user.id))
    response.set_cookie(settings.access_cookie_name, token, httponly=True, secure=False, samesite="lax")
    return {"success": True, "data": {"user": user.public(), "accessToken": token}}

@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    """Public profile of the authenticated user."""
    return {"success": True, "data": user.public()}

@router.post("/logout")
async def logout(response: Response):
    """
    Clear the access token cookie.

    Note:
        Only the cookie is removed; the JWT stays valid until it expires, and
        sockets that are already connected stay connected.
    """
    response.delete_cookie(settings.access_cookie_name)
    return {"success": True}
