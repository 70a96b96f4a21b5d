from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime

from app.core.validation import validate_name, validate_email


class ClientCreate(BaseModel):
    name: str
    email: Optional[str] = None  # omit to create an identifier-only client without login

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = v.strip()
        if not validate_name(v):
            raise ValueError("Name must be 2-255 characters with valid characters only")
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if not validate_email(v):
            raise ValueError("Please provide a valid email address")
        return v.lower()


class ClientResponse(BaseModel):
    id: str
    coach_id: str
    user_id: str
    name: str
    email: Optional[str] = None
    client_identifier: Optional[str] = None
    has_auth_access: bool = True
    unread_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientPage(BaseModel):
    items: List[ClientResponse]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool
    pages: List[int]
