# app/models/message.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Any

class Message(BaseModel):
    """A persisted chat message. Records are append-only: never edited or removed."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(alias="_id")
    sender: str
    receiver: str
    content: str
    timestamp: datetime

    @field_validator("id", mode="before")
    @classmethod
    def stringify_object_id(cls, value: Any) -> str:
        return str(value)

    @classmethod
    def from_mongo(cls, doc: dict) -> "Message":
        return cls.model_validate(doc)

    def to_event(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
