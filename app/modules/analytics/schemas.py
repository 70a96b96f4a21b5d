from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime


class PageViewCreate(BaseModel):
    page_path: str = Field(..., min_length=1, max_length=2048)
    session_id: str = Field(..., min_length=1, max_length=255)
    session_started_at: Optional[datetime] = None
    referrer: Optional[str] = Field(default=None, max_length=2048)
    user_agent: Optional[str] = Field(default=None, max_length=1024)
    page_load_time: Optional[int] = Field(default=None, ge=0)

    @field_validator("page_path")
    @classmethod
    def check_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("page_path must start with /")
        return v


class PageViewUpdate(BaseModel):
    session_id: str
    time_on_page: int = Field(..., ge=0)


class PageViewResponse(BaseModel):
    id: str
    event_type: str = "page_view"
    page_path: str
    session_id: str
    user_role: Optional[str] = None
    time_on_page: Optional[int] = None
    created_at: Optional[datetime] = None


class PathStats(BaseModel):
    page_path: str
    views: int
    avg_time_on_page: Optional[float] = None


class AnalyticsSummary(BaseModel):
    total_views: int
    unique_sessions: int
    views_by_role: Dict[str, int]
    avg_time_on_page: Optional[float] = None
    avg_page_load_time: Optional[float] = None
    top_pages: List[PathStats]
