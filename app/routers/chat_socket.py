# app/routers/chat_socket.py

import asyncio
import contextlib
from typing import Optional
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from app.core.jwt import decode_access_token, InvalidTokenError
from app.core.logger import logger
from app.services.connection_registry import (
    Connection,
    ConnectionRegistry,
    ConnectionState,
    get_registry,
)
from app.services.conversation import dispatch_event
from app.services.message_store import MessageStore, get_message_store

router = APIRouter(tags=["chat"])


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    store: MessageStore = Depends(get_message_store),
    registry: ConnectionRegistry = Depends(get_registry),
):
    try:
        identity = decode_access_token(token or "")
    except InvalidTokenError as e:
        logger.warning(f"Socket handshake rejected: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection = Connection(websocket, identity["user_id"])
    writer = asyncio.create_task(connection.run_writer())
    logger.info(f"🔌 A user connected: {connection.connection_id} (User ID: {connection.identity})")

    try:
        while connection.state != ConnectionState.CLOSED:
            raw = await websocket.receive_text()
            await dispatch_event(connection, raw, store, registry)
    except WebSocketDisconnect:
        pass
    finally:
        registry.deregister(connection)
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
        logger.info(f"🔌 User disconnected: {connection.connection_id} (User ID: {connection.identity})")
