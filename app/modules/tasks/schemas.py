from pydantic import BaseModel, field_validator
from typing import Optional, Literal
from datetime import datetime

from app.core.validation import validate_title, validate_description

TaskStatus = Literal["pending", "completed"]


class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        v = v.strip()
        if not validate_title(v):
            raise ValueError("Title is required and must be at most 500 characters")
        return v

    @field_validator("description")
    @classmethod
    def check_description(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip() or None
        if not validate_description(v):
            raise ValueError("Description must be at most 5000 characters")
        return v


class ClientTaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskResponse(BaseModel):
    id: str
    coach_id: str
    title: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientTaskResponse(BaseModel):
    """An assignment row joined with its task"""
    id: str
    client_id: str
    task_id: str
    status: TaskStatus
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    task: Optional[TaskResponse] = None

    class Config:
        from_attributes = True
