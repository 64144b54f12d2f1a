# app/routers/messages.py

from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.core.config import settings
from app.routers.deps import get_current_user
from app.schemas.chat import ConversationResponse
from app.services.message_store import MessageStore, get_message_store
from app.utils.errors import BadRequestError, PersistenceError, ServiceUnavailableError

router = APIRouter(tags=["messages"])


@router.get(
    "/{counterpart_id}",
    response_model=ConversationResponse,
    response_model_by_alias=True,
    summary="Get conversation history with another user"
)
async def get_conversation(
    counterpart_id: str,
    page: Optional[int] = Query(None, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=settings.HISTORY_MAX_PAGE_SIZE),
    current_user: dict = Depends(get_current_user),
    store: MessageStore = Depends(get_message_store),
):
    """
    Every message exchanged between the caller and `counterpart_id`, oldest first.
    Pass `page`/`page_size` to read it in slices.
    """
    if not counterpart_id.strip():
        raise BadRequestError("Recipient ID is required in the URL.")

    if page is not None and page_size is None:
        page_size = settings.HISTORY_MAX_PAGE_SIZE

    try:
        messages = await store.conversation(current_user["user_id"], counterpart_id, page, page_size)
    except PersistenceError as e:
        raise ServiceUnavailableError(str(e))

    return ConversationResponse(messages=messages)
