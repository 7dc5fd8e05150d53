import logging
from fastapi import APIRouter, WebSocket
from app.core.handshake import HandshakeContext

router = APIRouter()
logger = logging.getLogger("uvicorn.error")

@router.websocket("/ws/chat")
async def ws_chat(ws: WebSocket):
    """
    WebSocket endpoint for live chat events.

    Authentication:
        The access token is read from the ``accessToken`` cookie, or from the
        ``token`` query parameter (``/ws/chat?token=...``) when no cookie is sent.
        On failure the client receives a ``socketError`` frame and the socket is
        closed with code 1008.

    Message flow:
    1. Client connects, server authenticates and sends {"event": "connected"}
    2. Client sends {"event": "joinChat", "data": "<chatId>"}
       Server answers {"event": "joinChat", "data": "<chatId>"}
    3. Client sends {"event": "typing" | "stopTyping", "data": "<chatId>"}
       Other sockets in the chat receive the same frame
    4. REST writes push messageReceived / newChat / leaveChat / ... frames
    5. Client sends {"event": "disconnect"} or closes the socket

    Args:
        ws: WebSocket connection object
    """
    await ws.accept()
    realtime = ws.app.state.realtime
    ctx = HandshakeContext(
        cookie_header=ws.headers.get("cookie"),
        auth_token=ws.query_params.get("token"),
    )
    try:
        await realtime.tracker.serve(ws, ctx)
    except Exception as e:
        # Teardown already ran; only the server log needs to know
        logger.error("[ws_chat] connection error: %r", e, exc_info=True)
