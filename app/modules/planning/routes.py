from fastapi import APIRouter, Depends, HTTPException
from app.database.supabase_client import get_supabase
from app.modules.planning.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupDetailResponse, SharedGroupResponse,
    ParticipantCreate, ParticipantResponse, IdeaCreate, IdeaUpdate, IdeaResponse, VoteCreate,
    EventCreate, EventUpdate, EventResponse, AttendeeCreate, AttendeeResponse, PlanningAnalytics
)
from app.modules.planning.service import PlanningService
from app.core.dependencies import require_coach, check_planning_group_owner, get_planning_group_by_token
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/planning", tags=["planning"])


def get_planning_service(supabase: Client = Depends(get_supabase)) -> PlanningService:
    return PlanningService(supabase)


# Coach-managed groups

@router.post("/groups", response_model=GroupDetailResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    profile: Dict = Depends(require_coach),
    service: PlanningService = Depends(get_planning_service)
):
    """Create a planning group with its participants and share token"""
    return service.create_group(profile["id"], group_data)


@router.get("/groups", response_model=List[GroupResponse])
async def list_groups(
    profile: Dict = Depends(require_coach),
    service: PlanningService = Depends(get_planning_service)
):
    return service.list_groups(profile["id"])


@router.get("/groups/{group_id}", response_model=GroupDetailResponse)
async def get_group(
    group_id: str,
    profile: Dict = Depends(require_coach),
    service: PlanningService = Depends(get_planning_service),
    supabase: Client = Depends(get_supabase)
):
    group = check_planning_group_owner(group_id, profile, supabase)
    return service.get_group_detail(group)


@router.put("/groups/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_data: GroupUpdate,
    profile: Dict = Depends(require_coach),
    service: PlanningService = Depends(get_planning_service),
    supabase: Client = Depends(get_supabase)
):
    check_planning_group_owner(group_id, profile, supabase)
    return service.update_group(group_id, group_data)


@router.delete("/groups/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    profile: Dict = Depends(require_coach),
    service: PlanningService = Depends(get_planning_service),
    supabase: Client = Depends(get_supabase)
):
    check_planning_group_owner(group_id, profile, supabase)
    if not service.delete_group(group_id):
        raise HTTPException(status_code=404, detail="Planning group not found")
    return None


@router.post("/groups/{group_id}/regenerate-token", response_model=GroupResponse)
async def regenerate_token(
    group_id: str,
    profile: Dict = Depends(require_coach),
    service: PlanningService = Depends(get_planning_service),
    supabase: Client = Depends(get_supabase)
):
    """Issue a new share link, invalidating the old one"""
    check_planning_group_owner(group_id, profile, supabase)
    return service.regenerate_token(group_id)


# Shared access through the group's token, no login

@router.get("/shared/{access_token}", response_model=SharedGroupResponse)
async def get_shared_group(
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    return service.get_shared_group(group)


@router.get("/shared/{access_token}/participants", response_model=List[ParticipantResponse])
async def list_participants(
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    return service.list_participants(group["id"])


@router.post("/shared/{access_token}/participants", response_model=ParticipantResponse, status_code=201)
async def add_participant(
    participant_data: ParticipantCreate,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    return service.add_participant(group["id"], participant_data.name)


@router.delete("/shared/{access_token}/participants/{participant_id}", status_code=204)
async def remove_participant(
    participant_id: str,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    service.remove_participant(group["id"], participant_id)
    return None


@router.get("/shared/{access_token}/ideas", response_model=List[IdeaResponse])
async def list_ideas(
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    """Ideas, most voted first"""
    return service.list_ideas(group["id"])


@router.post("/shared/{access_token}/ideas", response_model=IdeaResponse, status_code=201)
async def create_idea(
    idea_data: IdeaCreate,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    return service.create_idea(group["id"], idea_data)


@router.put("/shared/{access_token}/ideas/{idea_id}", response_model=IdeaResponse)
async def update_idea(
    idea_id: str,
    idea_data: IdeaUpdate,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    return service.update_idea(group["id"], idea_id, idea_data)


@router.delete("/shared/{access_token}/ideas/{idea_id}", status_code=204)
async def delete_idea(
    idea_id: str,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    service.delete_idea(group["id"], idea_id)
    return None


@router.post("/shared/{access_token}/ideas/{idea_id}/votes", response_model=IdeaResponse, status_code=201)
async def vote_for_idea(
    idea_id: str,
    vote_data: VoteCreate,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    """Vote for an idea; a second vote by the same participant is a 409"""
    return service.vote(group["id"], idea_id, vote_data.participant_id)


@router.delete("/shared/{access_token}/ideas/{idea_id}/votes/{participant_id}", response_model=IdeaResponse)
async def remove_vote(
    idea_id: str,
    participant_id: str,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    return service.unvote(group["id"], idea_id, participant_id)


@router.post("/shared/{access_token}/ideas/{idea_id}/promote", response_model=EventResponse, status_code=201)
async def promote_idea(
    idea_id: str,
    event_data: EventCreate,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    """Create an event from an idea"""
    return service.promote_idea(group["id"], idea_id, event_data)


@router.get("/shared/{access_token}/events", response_model=List[EventResponse])
async def list_events(
    archived: Optional[bool] = False,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    """Active events by default, archived=true for the archive"""
    return service.list_events(group["id"], archived)


@router.post("/shared/{access_token}/events", response_model=EventResponse, status_code=201)
async def create_event(
    event_data: EventCreate,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    return service.create_event(group["id"], event_data)


@router.put("/shared/{access_token}/events/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str,
    event_data: EventUpdate,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    return service.update_event(group["id"], event_id, event_data)


@router.delete("/shared/{access_token}/events/{event_id}", status_code=204)
async def delete_event(
    event_id: str,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    service.delete_event(group["id"], event_id)
    return None


@router.post("/shared/{access_token}/events/{event_id}/archive", response_model=EventResponse)
async def archive_event(
    event_id: str,
    archived: bool = True,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    """Archive an event (archived=false restores it)"""
    return service.set_archived(group["id"], event_id, archived)


@router.get("/shared/{access_token}/events/{event_id}/attendees", response_model=List[AttendeeResponse])
async def list_attendees(
    event_id: str,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    return service.list_attendees(group["id"], event_id)


@router.post("/shared/{access_token}/events/{event_id}/attendees", response_model=AttendeeResponse, status_code=201)
async def add_attendee(
    event_id: str,
    attendee_data: AttendeeCreate,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    return service.add_attendee(group["id"], event_id, attendee_data.participant_id)


@router.delete("/shared/{access_token}/events/{event_id}/attendees/{participant_id}", status_code=204)
async def remove_attendee(
    event_id: str,
    participant_id: str,
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    if not service.remove_attendee(group["id"], event_id, participant_id):
        raise HTTPException(status_code=404, detail="Attendee not found")
    return None


@router.get("/shared/{access_token}/analytics", response_model=PlanningAnalytics)
async def get_analytics(
    group: Dict = Depends(get_planning_group_by_token),
    service: PlanningService = Depends(get_planning_service)
):
    return service.get_analytics(group["id"])
