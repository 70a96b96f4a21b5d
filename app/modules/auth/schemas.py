from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, Literal, Dict, Any

from app.core.validation import validate_name, validate_password


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    password: Optional[str] = None
    csrf_token: Optional[str] = Field(default=None, alias="csrfToken")


class SignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str
    name: str
    role: Literal["coach", "client"]
    csrf_token: Optional[str] = Field(default=None, alias="csrfToken")

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = v.strip()
        if not validate_name(v):
            raise ValueError("Name must be 2-255 characters with valid characters only")
        return v

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if not validate_password(v):
            raise ValueError("Password must be 8-128 characters with uppercase, lowercase and a number")
        return v


class CSRFTokenResponse(BaseModel):
    token: str


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None
    role: str
    name: Optional[str] = None


class SessionInfo(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    token_type: str = "bearer"


class LoginResponse(BaseModel):
    success: bool = True
    user: AuthUser
    session: SessionInfo


class SignupResponse(BaseModel):
    success: bool = True
    user: AuthUser


class MeResponse(BaseModel):
    id: str
    email: Optional[str] = None
    profile: Dict[str, Any]
