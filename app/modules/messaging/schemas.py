from pydantic import BaseModel, field_validator
from typing import Optional, Literal, Dict
from datetime import datetime

from app.core.validation import validate_message, MAX_MESSAGE_LENGTH

SenderType = Literal["coach", "client"]


class MessageCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def check_content(cls, v: str) -> str:
        if not validate_message(v):
            raise ValueError(f"Message must be between 1 and {MAX_MESSAGE_LENGTH} characters")
        return v


class MessageResponse(BaseModel):
    id: str
    client_id: str
    sender_type: SenderType
    content: str
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MarkReadResponse(BaseModel):
    marked: int


class UnreadCountResponse(BaseModel):
    count: int


class UnreadByClientResponse(BaseModel):
    counts: Dict[str, int]
