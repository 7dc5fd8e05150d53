# app/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file

class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "Realtime Chat API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins for frontend (comma separated override)
    CORS_ORIGINS: list[str] = [
        o.strip() for o in os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
        ).split(",") if o.strip()
    ]

    # Socket handshake
    # Seconds a connecting socket has to authenticate before it is dropped
    ws_handshake_timeout: float = float(os.getenv("WS_HANDSHAKE_TIMEOUT", "10"))
    # Seconds a single outbound frame may take before that delivery is dropped
    ws_send_timeout: float = float(os.getenv("WS_SEND_TIMEOUT", "5"))
    # Cookie that carries the access token (set by /auth/login)
    access_cookie_name: str = os.getenv("ACCESS_COOKIE_NAME", "accessToken")
    # Refuse joinChat for chats the user is not a participant of
    ws_check_participants: bool = os.getenv("WS_CHECK_PARTICIPANTS", "true").lower() in ("true", "1", "yes")

settings = Settings()  # Instantiate configuration
