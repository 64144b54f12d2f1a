# app/services/message_store.py

import asyncio
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from app.core.logger import logger
from app.db.mongo import get_messages_collection
from app.models.message import Message
from app.utils.errors import PersistenceError
from app.utils.pagination import build_pagination, build_sort


def conversation_filter(user_id: str, counterpart_id: str) -> dict:
    return {
        "$or": [
            {"sender": user_id, "receiver": counterpart_id},
            {"sender": counterpart_id, "receiver": user_id},
        ]
    }


class MessageStore:
    """
    Append-only access to the `messages` collection.

    Timestamps are assigned here, truncated to milliseconds (BSON datetime
    resolution) and never moved backwards, so a message echoed to clients is
    identical to the stored record and history order follows arrival order.
    """

    _last_timestamp: Optional[datetime] = None

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    @classmethod
    def next_timestamp(cls) -> datetime:
        now = datetime.utcnow()
        now = now.replace(microsecond=now.microsecond - now.microsecond % 1000)
        if cls._last_timestamp is not None and now < cls._last_timestamp:
            now = cls._last_timestamp
        cls._last_timestamp = now
        return now

    async def save(self, sender: str, receiver: str, content: str) -> Message:
        doc = {
            "_id": ObjectId(),
            "sender": sender,
            "receiver": receiver,
            "content": content,
            "timestamp": self.next_timestamp(),
        }
        try:
            # A closing connection must not abort a write that already started
            await asyncio.shield(self.collection.insert_one(doc))
        except PyMongoError as e:
            logger.error(f"Failed to persist message from {sender} to {receiver}: {e}", exc_info=True)
            raise PersistenceError("Failed to send or save message.") from e

        logger.info(f"💾 Message saved: {doc['_id']}")
        return Message.from_mongo(doc)

    async def conversation(
        self,
        user_id: str,
        counterpart_id: str,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> List[Message]:
        cursor = self.collection.find(conversation_filter(user_id, counterpart_id)).sort(build_sort("timestamp"))
        if page_size:
            skip, limit = build_pagination(page or 1, page_size)
            cursor = cursor.skip(skip).limit(limit)

        try:
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Failed to load conversation {user_id} <-> {counterpart_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to load conversation history.") from e

        return [Message.from_mongo(doc) for doc in docs]


def get_message_store(
    collection: AsyncIOMotorCollection = Depends(get_messages_collection),
) -> MessageStore:
    return MessageStore(collection)
