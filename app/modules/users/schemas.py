from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime

from app.core.validation import validate_name


class UserUpdate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = v.strip()
        if not validate_name(v):
            raise ValueError("Name must be 2-255 characters with valid characters only")
        return v


class UserResponse(BaseModel):
    id: str
    auth_user_id: Optional[str] = None
    email: Optional[str] = None
    client_identifier: Optional[str] = None
    has_auth_access: bool = True
    role: str
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
