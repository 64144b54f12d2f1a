# app/services/conversation.py

from typing import Any, Optional

from pydantic import ValidationError

from app.core.config import settings
from app.core.logger import logger
from app.models.message import Message
from app.schemas.chat import SendMessagePayload, SocketEvent
from app.services.connection_registry import Connection, ConnectionRegistry, ConnectionState
from app.services.message_store import MessageStore
from app.utils.errors import PersistenceError

REJECTION_MESSAGES = {
    "not_registered": "Join a room before sending messages.",
    "invalid_payload": "Malformed sendMessage payload.",
    "sender_mismatch": "senderId does not match the authenticated user.",
    "empty_recipient": "recipientId is required.",
    "empty_content": "Message content is required.",
    "content_too_long": "Message exceeds {max_length} characters.",
}


def join_room(connection: Connection, registry: ConnectionRegistry, data: Any) -> bool:
    """
    Register the connection for delivery under its verified identity.
    Clients send their user id, either bare or as {"userId": ...}; it must match the token.
    """
    requested = data.get("userId") if isinstance(data, dict) else data

    if requested is not None and not isinstance(requested, str):
        connection.send_event("joinRoomError", {"message": "userId must be a string."})
        return False

    if requested and requested != connection.identity:
        logger.warning(
            f"joinRoom rejected on {connection.connection_id}: requested {requested}, authenticated {connection.identity}"
        )
        connection.send_event("joinRoomError", {"message": "userId does not match the authenticated user."})
        return False

    registry.register(connection, connection.identity)
    connection.send_event("joinedRoom", {"userId": connection.identity})
    return True


def reject_submission(connection: Connection, reason: str, client_id: Optional[str], message: Optional[str] = None):
    logger.warning(f"sendMessage rejected on {connection.connection_id} ({connection.user_id}): {reason}")
    if message is None:
        message = REJECTION_MESSAGES[reason].format(max_length=settings.MESSAGE_MAX_LENGTH)
    connection.send_event(
        "sendMessageError",
        {
            "message": message,
            "reason": reason,
            "clientId": client_id,
        },
    )


async def submit_message(
    connection: Connection,
    store: MessageStore,
    registry: ConnectionRegistry,
    data: Any,
) -> Optional[Message]:
    """
    Persist a message, then queue it for every live connection of both participants.

    The sender is always the connection's registered identity. Each call ends
    with exactly one outcome event to the submitter: `sendMessageAck` or
    `sendMessageError`. Only the store write is awaited; delivery never is.
    """
    client_id = data.get("clientId") if isinstance(data, dict) else None
    if not isinstance(client_id, str):
        client_id = None

    if connection.state != ConnectionState.REGISTERED:
        reject_submission(connection, "not_registered", client_id)
        return None

    try:
        payload = SendMessagePayload.model_validate(data)
    except ValidationError:
        reject_submission(connection, "invalid_payload", client_id)
        return None

    sender = connection.user_id
    if payload.senderId and payload.senderId != sender:
        reject_submission(connection, "sender_mismatch", client_id)
        return None
    if not payload.recipientId or not payload.recipientId.strip():
        reject_submission(connection, "empty_recipient", client_id)
        return None
    if not payload.message or not payload.message.strip():
        reject_submission(connection, "empty_content", client_id)
        return None
    if len(payload.message) > settings.MESSAGE_MAX_LENGTH:
        reject_submission(connection, "content_too_long", client_id)
        return None

    logger.info(f"Received message from {sender} to {payload.recipientId}")

    try:
        message = await store.save(sender, payload.recipientId, payload.message)
    except PersistenceError as e:
        reject_submission(connection, "persistence_failed", client_id, message=str(e))
        return None

    delivered = registry.fan_out([message.receiver, message.sender], "receiveMessage", message.to_event())
    logger.info(f"Message {message.id} queued for {delivered} connection(s)")

    connection.send_event("sendMessageAck", {"clientId": client_id, "messageId": message.id})
    return message


async def dispatch_event(
    connection: Connection,
    raw: str,
    store: MessageStore,
    registry: ConnectionRegistry,
) -> None:
    try:
        frame = SocketEvent.model_validate_json(raw)
    except ValidationError:
        logger.warning(f"Invalid frame from {connection.connection_id}")
        connection.send_event(
            "error", {"message": "Invalid message format. Please send JSON with an 'event' field."}
        )
        return

    if frame.event == "joinRoom":
        join_room(connection, registry, frame.data)
    elif frame.event == "sendMessage":
        await submit_message(connection, store, registry, frame.data)
    else:
        connection.send_event("error", {"message": f"Unknown event: {frame.event}"})
