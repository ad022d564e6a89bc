"""
Realtime chat endpoint
WebSocket transport of the room protocol

Frames in both directions are JSON envelopes: {"event": ..., "data": {...}}
"""

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from backend.schemas.events import Envelope, ErrorMessage, dump
from backend.services.chat_server import ChatServer

logger = logging.getLogger(__name__)
router = APIRouter(tags=["realtime"])


class WebSocketConnection:
    """Room connection backed by a Starlette WebSocket"""

    def __init__(self, websocket: WebSocket):
        self.id = uuid.uuid4().hex
        self.websocket = websocket

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        await self.websocket.send_json({"event": event, "data": data})


@router.websocket("/ws/chat")
async def chat_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None, description="API key, for clients that cannot set headers"),
    anonymous_session_id: Optional[str] = Query(None),
):
    """
    Room protocol

    Inbound: join_chat, send_message, send_quick_question, typing_start,
    typing_stop, rate_chat. Disconnecting leaves the room but never
    cancels a reply that is being generated.
    """
    server: ChatServer = websocket.app.state.chat_server

    authorization = websocket.headers.get("authorization") or (f"Bearer {token}" if token else None)
    try:
        identity = await server.identity.resolve(authorization, anonymous_session_id)
    except HTTPException as e:
        logger.info(f"Rejected WebSocket connection: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection = WebSocketConnection(websocket)
    server.connect(connection, identity)
    logger.debug(f"Connection {connection.id} opened for {identity.key}")

    try:
        while True:
            try:
                raw = await websocket.receive_json()
                envelope = Envelope.model_validate(raw)
            except (ValueError, ValidationError):
                await connection.send("error", dump(ErrorMessage(message="Format pesan tidak valid")))
                continue

            await server.handle(connection.id, envelope.event, envelope.data)
    except WebSocketDisconnect:
        logger.debug(f"Connection {connection.id} closed")
    finally:
        server.disconnect(connection.id)
