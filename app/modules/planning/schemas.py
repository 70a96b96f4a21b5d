from pydantic import BaseModel, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import date, datetime

from app.core.validation import (
    validate_required, validate_title, validate_description, validate_location, validate_date_range
)

MAX_GROUP_NAME_LENGTH = 255
MAX_PARTICIPANT_NAME_LENGTH = 100


def _clean_participant_name(v: str) -> str:
    v = (v or "").strip()
    if not validate_required(v):
        raise ValueError("Participant name is required")
    if len(v) > MAX_PARTICIPANT_NAME_LENGTH:
        raise ValueError(f"Participant name must be at most {MAX_PARTICIPANT_NAME_LENGTH} characters")
    return v


def _clean_optional_text(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    return v.strip() or None


class _IdeaFields(BaseModel):
    @field_validator("title", check_fields=False)
    @classmethod
    def check_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not validate_title(v):
            raise ValueError("Title is required and must be at most 500 characters")
        return v

    @field_validator("description", check_fields=False)
    @classmethod
    def check_description(cls, v: Optional[str]) -> Optional[str]:
        v = _clean_optional_text(v)
        if not validate_description(v):
            raise ValueError("Description must be at most 5000 characters")
        return v

    @field_validator("location", "city", "country", check_fields=False)
    @classmethod
    def check_location(cls, v: Optional[str]) -> Optional[str]:
        v = _clean_optional_text(v)
        if not validate_location(v):
            raise ValueError("Must be at most 255 characters")
        return v


# Groups

class GroupCreate(BaseModel):
    name: str
    participants: List[str]

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = v.strip()
        if not validate_required(v) or len(v) > MAX_GROUP_NAME_LENGTH:
            raise ValueError(f"Group name is required and must be at most {MAX_GROUP_NAME_LENGTH} characters")
        return v

    @field_validator("participants")
    @classmethod
    def check_participants(cls, v: List[str]) -> List[str]:
        names = [_clean_participant_name(name) for name in v]
        if not names:
            raise ValueError("Add at least one participant")
        lowered = [name.lower() for name in names]
        if len(set(lowered)) != len(lowered):
            raise ValueError("Participant names must be unique")
        return names


class GroupUpdate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = v.strip()
        if not validate_required(v) or len(v) > MAX_GROUP_NAME_LENGTH:
            raise ValueError(f"Group name is required and must be at most {MAX_GROUP_NAME_LENGTH} characters")
        return v


class ParticipantCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return _clean_participant_name(v)


class ParticipantResponse(BaseModel):
    id: str
    group_id: str
    name: str
    color: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupResponse(BaseModel):
    id: str
    coach_id: str
    name: str
    access_token: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupDetailResponse(GroupResponse):
    participants: List[ParticipantResponse] = []


class SharedGroupResponse(BaseModel):
    """What a share-link holder sees of a group"""
    id: str
    name: str
    participants: List[ParticipantResponse] = []


# Ideas

class IdeaCreate(_IdeaFields):
    participant_id: str
    title: str
    description: Optional[str] = None
    suggested_dates: Optional[List[date]] = None
    location: Optional[str] = None


class IdeaUpdate(_IdeaFields):
    title: Optional[str] = None
    description: Optional[str] = None
    suggested_dates: Optional[List[date]] = None
    location: Optional[str] = None


class IdeaResponse(BaseModel):
    id: str
    group_id: str
    participant_id: str
    title: str
    description: Optional[str] = None
    suggested_dates: Optional[List[date]] = None
    location: Optional[str] = None
    promoted_to_event_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    vote_count: int = 0
    voter_ids: List[str] = []
    participant_name: Optional[str] = None
    participant_color: Optional[str] = None

    class Config:
        from_attributes = True


class VoteCreate(BaseModel):
    participant_id: str


# Events

class EventCreate(_IdeaFields):
    title: str
    description: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    location: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    created_by: Optional[str] = None  # participant id

    @model_validator(mode="after")
    def check_dates(self):
        if not validate_date_range(self.start_date, self.end_date):
            raise ValueError("End date must be on or after start date")
        return self


class EventUpdate(_IdeaFields):
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    location: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and not validate_date_range(self.start_date, self.end_date):
            raise ValueError("End date must be on or after start date")
        return self


class EventResponse(BaseModel):
    id: str
    group_id: str
    created_by: Optional[str] = None
    title: str
    description: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    location: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    attendee_count: int = 0
    creator_name: Optional[str] = None
    creator_color: Optional[str] = None

    class Config:
        from_attributes = True


class AttendeeCreate(BaseModel):
    participant_id: str


class AttendeeResponse(BaseModel):
    id: str
    event_id: str
    participant_id: str
    participant_name: Optional[str] = None
    participant_color: Optional[str] = None
    created_at: Optional[datetime] = None


# Analytics

class CityEntry(BaseModel):
    city: str
    country: str


class PlanningAnalytics(BaseModel):
    total_events: int
    total_ideas: int
    monthly_data: Dict[int, int]
    cities: List[CityEntry]
