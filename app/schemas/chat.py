# app/schemas/chat.py
from pydantic import BaseModel
from typing import Any, List, Optional

from app.models.message import Message

# ---------------------
# Socket frames
# ---------------------

class SocketEvent(BaseModel):
    event: str
    data: Any = None

class SendMessagePayload(BaseModel):
    recipientId: Optional[str] = None
    message: Optional[str] = None
    senderId: Optional[str] = None
    clientId: Optional[str] = None

# ---------------------
# HTTP responses
# ---------------------

class ConversationResponse(BaseModel):
    messages: List[Message]
