from supabase import Client
from app.modules.planning.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupDetailResponse, SharedGroupResponse,
    ParticipantResponse, IdeaCreate, IdeaUpdate, IdeaResponse,
    EventCreate, EventUpdate, EventResponse, AttendeeResponse, PlanningAnalytics, CityEntry
)
from app.core.tokens import generate_access_token
from fastapi import HTTPException
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Any
import logging

logger = logging.getLogger(__name__)

PARTICIPANT_COLORS = [
    "#FF6B6B",
    "#4ECDC4",
    "#FFE66D",
    "#95E1D3",
    "#C7CEEA",
    "#FF8B94",
    "#B4A7D6",
    "#73A580",
]


def participant_color(index: int) -> str:
    return PARTICIPANT_COLORS[index % len(PARTICIPANT_COLORS)]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_unique_violation(error: Exception) -> bool:
    message = str(error).lower()
    return "duplicate" in message or "23505" in message or "unique" in message


class PlanningService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    # Groups

    def create_group(self, coach_id: str, group_data: GroupCreate) -> GroupDetailResponse:
        """Create a group with its first participants and a fresh share token"""
        try:
            result = self.supabase.table("planning_groups").insert({
                "coach_id": coach_id,
                "name": group_data.name,
                "access_token": generate_access_token(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create planning group")

            group = result.data[0]
            rows = [
                {"group_id": group["id"], "name": name, "color": participant_color(i)}
                for i, name in enumerate(group_data.participants)
            ]
            try:
                participants = self.supabase.table("planning_participants").insert(rows).execute()
            except Exception as e:
                logger.error(f"Failed to add participants to group {group['id']}: {e}")
                self.supabase.table("planning_groups")\
                    .delete()\
                    .eq("id", group["id"])\
                    .execute()
                raise HTTPException(status_code=500, detail="Failed to create participants")

            logger.info(f"Coach {coach_id} created planning group {group['id']} with {len(rows)} participants")
            return GroupDetailResponse(
                **group,
                participants=[ParticipantResponse(**p) for p in (participants.data or [])],
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating planning group: {e}")
            raise HTTPException(status_code=500, detail="Failed to create planning group")

    def list_groups(self, coach_id: str) -> List[GroupResponse]:
        try:
            result = self.supabase.table("planning_groups")\
                .select("*")\
                .eq("coach_id", coach_id)\
                .order("created_at", desc=True)\
                .execute()
            return [GroupResponse(**g) for g in (result.data or [])]
        except Exception as e:
            logger.error(f"Error listing planning groups for coach {coach_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load planning groups")

    def get_group_detail(self, group: dict) -> GroupDetailResponse:
        return GroupDetailResponse(**group, participants=self.list_participants(group["id"]))

    def get_shared_group(self, group: dict) -> SharedGroupResponse:
        return SharedGroupResponse(
            id=group["id"],
            name=group["name"],
            participants=self.list_participants(group["id"]),
        )

    def update_group(self, group_id: str, group_data: GroupUpdate) -> GroupResponse:
        try:
            result = self.supabase.table("planning_groups")\
                .update({"name": group_data.name, "updated_at": _now()})\
                .eq("id", group_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Planning group not found")

            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating planning group {group_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update planning group")

    def regenerate_token(self, group_id: str) -> GroupResponse:
        """Replace the share token; the old link stops working"""
        try:
            result = self.supabase.table("planning_groups")\
                .update({"access_token": generate_access_token(), "updated_at": _now()})\
                .eq("id", group_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Planning group not found")

            logger.info(f"Access token regenerated for planning group {group_id}")
            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error regenerating token for planning group {group_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to regenerate access token")

    def delete_group(self, group_id: str) -> bool:
        """Delete a group; participants, ideas, votes and events cascade"""
        try:
            result = self.supabase.table("planning_groups")\
                .delete()\
                .eq("id", group_id)\
                .execute()
            return len(result.data or []) > 0
        except Exception as e:
            logger.error(f"Error deleting planning group {group_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete planning group")

    # Participants

    def _participant_rows(self, group_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("planning_participants")\
            .select("*")\
            .eq("group_id", group_id)\
            .order("created_at")\
            .execute()
        return result.data or []

    def list_participants(self, group_id: str) -> List[ParticipantResponse]:
        try:
            return [ParticipantResponse(**p) for p in self._participant_rows(group_id)]
        except Exception as e:
            logger.error(f"Error loading participants for group {group_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load participants")

    def get_participant(self, group_id: str, participant_id: str) -> dict:
        """A participant of this group, 404 for anyone else"""
        result = self.supabase.table("planning_participants")\
            .select("*")\
            .eq("id", participant_id)\
            .eq("group_id", group_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Participant not found")
        return result.data[0]

    def add_participant(self, group_id: str, name: str) -> ParticipantResponse:
        """Add a participant, colouring them by how many the group already has"""
        try:
            existing = self._participant_rows(group_id)
            if any(p["name"].lower() == name.lower() for p in existing):
                raise HTTPException(status_code=409, detail="A participant with this name already exists")

            result = self.supabase.table("planning_participants").insert({
                "group_id": group_id,
                "name": name,
                "color": participant_color(len(existing)),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add participant")

            return ParticipantResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error adding participant to group {group_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to add participant")

    def remove_participant(self, group_id: str, participant_id: str) -> bool:
        self.get_participant(group_id, participant_id)
        try:
            result = self.supabase.table("planning_participants")\
                .delete()\
                .eq("id", participant_id)\
                .eq("group_id", group_id)\
                .execute()
            return len(result.data or []) > 0
        except Exception as e:
            logger.error(f"Error removing participant {participant_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to remove participant")

    # Ideas

    def _idea_responses(self, group_id: str, ideas: List[dict]) -> List[IdeaResponse]:
        idea_ids = [i["id"] for i in ideas]
        voters: Dict[str, List[str]] = {idea_id: [] for idea_id in idea_ids}
        if idea_ids:
            votes = self.supabase.table("planning_idea_votes")\
                .select("idea_id, participant_id")\
                .in_("idea_id", idea_ids)\
                .execute()
            for vote in votes.data or []:
                voters.setdefault(vote["idea_id"], []).append(vote["participant_id"])
        participants = {p["id"]: p for p in self._participant_rows(group_id)}
        responses = []
        for idea in ideas:
            author = participants.get(idea.get("participant_id"), {})
            responses.append(IdeaResponse(
                **idea,
                vote_count=len(voters.get(idea["id"], [])),
                voter_ids=voters.get(idea["id"], []),
                participant_name=author.get("name"),
                participant_color=author.get("color"),
            ))
        return responses

    def list_ideas(self, group_id: str) -> List[IdeaResponse]:
        """Ideas with vote counts, most voted first (newest first on ties)"""
        try:
            result = self.supabase.table("planning_ideas")\
                .select("*")\
                .eq("group_id", group_id)\
                .order("created_at", desc=True)\
                .execute()
            ideas = self._idea_responses(group_id, result.data or [])
            return sorted(ideas, key=lambda idea: idea.vote_count, reverse=True)
        except Exception as e:
            logger.error(f"Error loading ideas for group {group_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load ideas")

    def get_idea(self, group_id: str, idea_id: str) -> dict:
        result = self.supabase.table("planning_ideas")\
            .select("*")\
            .eq("id", idea_id)\
            .eq("group_id", group_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Idea not found")
        return result.data[0]

    def _idea_response(self, group_id: str, idea: dict) -> IdeaResponse:
        return self._idea_responses(group_id, [idea])[0]

    def create_idea(self, group_id: str, idea_data: IdeaCreate) -> IdeaResponse:
        self.get_participant(group_id, idea_data.participant_id)
        try:
            payload = idea_data.model_dump(mode="json")
            payload["group_id"] = group_id
            result = self.supabase.table("planning_ideas").insert(payload).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create idea")

            return self._idea_response(group_id, result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating idea in group {group_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create idea")

    def update_idea(self, group_id: str, idea_id: str, idea_data: IdeaUpdate) -> IdeaResponse:
        self.get_idea(group_id, idea_id)
        try:
            update_data = idea_data.model_dump(mode="json", exclude_unset=True)
            if "title" in update_data and update_data["title"] is None:
                raise HTTPException(status_code=400, detail="Title cannot be empty")
            update_data["updated_at"] = _now()

            result = self.supabase.table("planning_ideas")\
                .update(update_data)\
                .eq("id", idea_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Idea not found")

            return self._idea_response(group_id, result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating idea {idea_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update idea")

    def delete_idea(self, group_id: str, idea_id: str) -> bool:
        self.get_idea(group_id, idea_id)
        try:
            self.supabase.table("planning_idea_votes")\
                .delete()\
                .eq("idea_id", idea_id)\
                .execute()

            result = self.supabase.table("planning_ideas")\
                .delete()\
                .eq("id", idea_id)\
                .execute()
            return len(result.data or []) > 0
        except Exception as e:
            logger.error(f"Error deleting idea {idea_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete idea")

    def vote(self, group_id: str, idea_id: str, participant_id: str) -> IdeaResponse:
        """One vote per participant per idea"""
        idea = self.get_idea(group_id, idea_id)
        self.get_participant(group_id, participant_id)
        try:
            existing = self.supabase.table("planning_idea_votes")\
                .select("id")\
                .eq("idea_id", idea_id)\
                .eq("participant_id", participant_id)\
                .limit(1)\
                .execute()
            if existing.data:
                raise HTTPException(status_code=409, detail="Participant has already voted for this idea")

            try:
                self.supabase.table("planning_idea_votes").insert({
                    "idea_id": idea_id,
                    "participant_id": participant_id,
                }).execute()
            except Exception as e:
                if _is_unique_violation(e):
                    raise HTTPException(status_code=409, detail="Participant has already voted for this idea")
                raise

            return self._idea_response(group_id, idea)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error voting on idea {idea_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to record vote")

    def unvote(self, group_id: str, idea_id: str, participant_id: str) -> IdeaResponse:
        idea = self.get_idea(group_id, idea_id)
        try:
            result = self.supabase.table("planning_idea_votes")\
                .delete()\
                .eq("idea_id", idea_id)\
                .eq("participant_id", participant_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Vote not found")
            return self._idea_response(group_id, idea)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error removing vote on idea {idea_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to remove vote")

    def promote_idea(self, group_id: str, idea_id: str, event_data: EventCreate) -> EventResponse:
        """Turn an idea into an event and link the two"""
        idea = self.get_idea(group_id, idea_id)
        if idea.get("promoted_to_event_id"):
            raise HTTPException(status_code=409, detail="Idea has already been promoted to an event")
        if event_data.created_by is None:
            event_data = event_data.model_copy(update={"created_by": idea.get("participant_id")})

        event = self.create_event(group_id, event_data)
        try:
            self.supabase.table("planning_ideas")\
                .update({"promoted_to_event_id": event.id, "updated_at": _now()})\
                .eq("id", idea_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error linking idea {idea_id} to event {event.id}: {e}")
            try:
                self.supabase.table("planning_events").delete().eq("id", event.id).execute()
            except Exception as cleanup_error:
                logger.error(f"Error removing unlinked event {event.id}: {cleanup_error}")
            raise HTTPException(status_code=500, detail="Error linking idea to event")

        logger.info(f"Idea {idea_id} promoted to event {event.id} in group {group_id}")
        return event

    # Events

    def _event_responses(self, group_id: str, events: List[dict]) -> List[EventResponse]:
        event_ids = [e["id"] for e in events]
        counts: Dict[str, int] = {}
        if event_ids:
            attendees = self.supabase.table("planning_event_participants")\
                .select("event_id")\
                .in_("event_id", event_ids)\
                .execute()
            for row in attendees.data or []:
                counts[row["event_id"]] = counts.get(row["event_id"], 0) + 1
        participants = {p["id"]: p for p in self._participant_rows(group_id)}
        responses = []
        for event in events:
            creator = participants.get(event.get("created_by"), {})
            responses.append(EventResponse(
                **event,
                attendee_count=counts.get(event["id"], 0),
                creator_name=creator.get("name"),
                creator_color=creator.get("color"),
            ))
        return responses

    def list_events(self, group_id: str, archived: Optional[bool] = False) -> List[EventResponse]:
        """
        Events of a group.

        Active events come soonest first, archived ones most recent first.
        archived=None returns both, ordered by start date.
        """
        try:
            query = self.supabase.table("planning_events")\
                .select("*")\
                .eq("group_id", group_id)
            if archived is not None:
                query = query.eq("is_archived", archived)
            result = query.order("start_date", desc=bool(archived)).execute()
            return self._event_responses(group_id, result.data or [])
        except Exception as e:
            logger.error(f"Error loading events for group {group_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load events")

    def get_event(self, group_id: str, event_id: str) -> dict:
        result = self.supabase.table("planning_events")\
            .select("*")\
            .eq("id", event_id)\
            .eq("group_id", group_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Event not found")
        return result.data[0]

    def create_event(self, group_id: str, event_data: EventCreate) -> EventResponse:
        if event_data.created_by:
            self.get_participant(group_id, event_data.created_by)
        try:
            payload = event_data.model_dump(mode="json")
            payload["group_id"] = group_id
            payload["is_archived"] = False
            result = self.supabase.table("planning_events").insert(payload).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create event")

            return self._event_responses(group_id, result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating event in group {group_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create event")

    def update_event(self, group_id: str, event_id: str, event_data: EventUpdate) -> EventResponse:
        event = self.get_event(group_id, event_id)
        update_data = event_data.model_dump(mode="json", exclude_unset=True)
        if "title" in update_data and update_data["title"] is None:
            raise HTTPException(status_code=400, detail="Title cannot be empty")
        if "start_date" in update_data and update_data["start_date"] is None:
            raise HTTPException(status_code=400, detail="Start date is required")

        start = event_data.start_date or date.fromisoformat(str(event["start_date"])[:10])
        end = event_data.end_date if "end_date" in update_data else event.get("end_date")
        if isinstance(end, str):
            end = date.fromisoformat(end[:10])
        if end is not None and end < start:
            raise HTTPException(status_code=400, detail="End date must be on or after start date")

        try:
            update_data["updated_at"] = _now()
            result = self.supabase.table("planning_events")\
                .update(update_data)\
                .eq("id", event_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Event not found")

            return self._event_responses(group_id, result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating event {event_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update event")

    def set_archived(self, group_id: str, event_id: str, archived: bool = True) -> EventResponse:
        self.get_event(group_id, event_id)
        try:
            result = self.supabase.table("planning_events")\
                .update({"is_archived": archived, "updated_at": _now()})\
                .eq("id", event_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Event not found")

            return self._event_responses(group_id, result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error archiving event {event_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to archive event")

    def delete_event(self, group_id: str, event_id: str) -> bool:
        """Delete an event; ideas promoted to it return to the idea pool"""
        self.get_event(group_id, event_id)
        try:
            self.supabase.table("planning_ideas")\
                .update({"promoted_to_event_id": None})\
                .eq("promoted_to_event_id", event_id)\
                .execute()

            self.supabase.table("planning_event_participants")\
                .delete()\
                .eq("event_id", event_id)\
                .execute()

            result = self.supabase.table("planning_events")\
                .delete()\
                .eq("id", event_id)\
                .execute()
            return len(result.data or []) > 0
        except Exception as e:
            logger.error(f"Error deleting event {event_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete event")

    # Attendees

    def list_attendees(self, group_id: str, event_id: str) -> List[AttendeeResponse]:
        self.get_event(group_id, event_id)
        try:
            result = self.supabase.table("planning_event_participants")\
                .select("*")\
                .eq("event_id", event_id)\
                .order("created_at")\
                .execute()
            participants = {p["id"]: p for p in self._participant_rows(group_id)}
            attendees = []
            for row in result.data or []:
                participant = participants.get(row["participant_id"], {})
                attendees.append(AttendeeResponse(
                    **row,
                    participant_name=participant.get("name"),
                    participant_color=participant.get("color"),
                ))
            return attendees
        except Exception as e:
            logger.error(f"Error loading attendees for event {event_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load attendees")

    def add_attendee(self, group_id: str, event_id: str, participant_id: str) -> AttendeeResponse:
        self.get_event(group_id, event_id)
        participant = self.get_participant(group_id, participant_id)
        try:
            existing = self.supabase.table("planning_event_participants")\
                .select("id")\
                .eq("event_id", event_id)\
                .eq("participant_id", participant_id)\
                .limit(1)\
                .execute()
            if existing.data:
                raise HTTPException(status_code=409, detail="Participant is already attending this event")

            try:
                result = self.supabase.table("planning_event_participants").insert({
                    "event_id": event_id,
                    "participant_id": participant_id,
                }).execute()
            except Exception as e:
                if _is_unique_violation(e):
                    raise HTTPException(status_code=409, detail="Participant is already attending this event")
                raise

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add attendee")

            return AttendeeResponse(
                **result.data[0],
                participant_name=participant.get("name"),
                participant_color=participant.get("color"),
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error adding attendee to event {event_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to add attendee")

    def remove_attendee(self, group_id: str, event_id: str, participant_id: str) -> bool:
        self.get_event(group_id, event_id)
        try:
            result = self.supabase.table("planning_event_participants")\
                .delete()\
                .eq("event_id", event_id)\
                .eq("participant_id", participant_id)\
                .execute()
            return len(result.data or []) > 0
        except Exception as e:
            logger.error(f"Error removing attendee from event {event_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to remove attendee")

    # Analytics

    def get_analytics(self, group_id: str) -> PlanningAnalytics:
        """Event and idea totals, events per month and visited cities"""
        try:
            events = self.supabase.table("planning_events")\
                .select("*")\
                .eq("group_id", group_id)\
                .execute().data or []

            ideas = self.supabase.table("planning_ideas")\
                .select("id")\
                .eq("group_id", group_id)\
                .is_("promoted_to_event_id", "null")\
                .execute().data or []

            monthly_data: Dict[int, int] = {}
            cities: List[CityEntry] = []
            for event in events:
                month = int(str(event["start_date"])[5:7])
                monthly_data[month] = monthly_data.get(month, 0) + 1
                if event.get("city") and event.get("country"):
                    cities.append(CityEntry(city=event["city"], country=event["country"]))

            return PlanningAnalytics(
                total_events=sum(1 for e in events if not e.get("is_archived")),
                total_ideas=len(ideas),
                monthly_data=monthly_data,
                cities=cities,
            )
        except Exception as e:
            logger.error(f"Error computing analytics for group {group_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load analytics")
