# app/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.core.db import init_db, close_db
from app.core.realtime import Realtime
from app.services.identity_store import TortoiseIdentityStore, is_chat_participant

from app.api.v1.routers import auth, chats, messages
from app.api.v1.routers.ws_chat import router as ws_chat_router

logger = logging.getLogger("uvicorn.error")

def build_realtime() -> Realtime:
    """Real-time core backed by the database identity store."""
    return Realtime(
        TortoiseIdentityStore(),
        cookie_name=settings.access_cookie_name,
        handshake_timeout=settings.ws_handshake_timeout,
        send_timeout=settings.ws_send_timeout,
        participant_check=is_chat_participant if settings.ws_check_participants else None,
    )

app = FastAPI(title=settings.APP_NAME)
# One instance per process; handlers reach it through app.state
app.state.realtime = build_realtime()

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def on_startup():
    await init_db()
    logger.info("[startup] %s ready (env=%s, handshake timeout=%ss)",
                settings.APP_NAME, settings.env, settings.ws_handshake_timeout)

@app.on_event("shutdown")
async def on_shutdown():
    await close_db()

# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(chats.router, prefix="/api/v1")
app.include_router(messages.router, prefix="/api/v1")

# WebSocket
app.include_router(ws_chat_router)

@app.get("/healthz")
def healthz():
    return {"ok": True}
