from supabase import Client
from app.modules.analytics.schemas import (
    PageViewCreate, PageViewUpdate, PageViewResponse, PathStats, AnalyticsSummary
)
from fastapi import HTTPException
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


def _average(values: List[int]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 1)


class AnalyticsService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def record_page_view(self, view: PageViewCreate, profile: Optional[dict] = None) -> PageViewResponse:
        """Store a page view. Anonymous views carry no user id."""
        try:
            payload = view.model_dump(mode="json")
            payload.update({
                "event_type": "page_view",
                "user_id": profile["id"] if profile else None,
                "user_role": profile.get("role", "anonymous") if profile else "anonymous",
            })
            result = self.supabase.table("analytics_events").insert(payload).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to track page view")

            return PageViewResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to track page view for {view.page_path}: {e}")
            raise HTTPException(status_code=500, detail="Failed to track page view")

    def record_time_on_page(self, event_id: str, update: PageViewUpdate) -> PageViewResponse:
        """Set time spent on a page; only the session that recorded the view may do it"""
        try:
            result = self.supabase.table("analytics_events")\
                .update({
                    "time_on_page": update.time_on_page,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                })\
                .eq("id", event_id)\
                .eq("session_id", update.session_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Page view not found")

            return PageViewResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to update time on page for event {event_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update time on page")

    def get_summary(self, days: Optional[int] = None, top: int = 10) -> AnalyticsSummary:
        """Totals, per-role counts, timing averages and the most viewed pages"""
        try:
            query = self.supabase.table("analytics_events")\
                .select("page_path, session_id, user_role, time_on_page, page_load_time, created_at")\
                .eq("event_type", "page_view")
            if days:
                since = datetime.now(timezone.utc) - timedelta(days=days)
                query = query.gte("created_at", since.isoformat())
            events = query.execute().data or []

            by_role: Dict[str, int] = {}
            by_path: Dict[str, List[dict]] = {}
            for event in events:
                role = event.get("user_role") or "anonymous"
                by_role[role] = by_role.get(role, 0) + 1
                by_path.setdefault(event["page_path"], []).append(event)

            top_pages = [
                PathStats(
                    page_path=path,
                    views=len(rows),
                    avg_time_on_page=_average([r["time_on_page"] for r in rows if r.get("time_on_page") is not None]),
                )
                for path, rows in by_path.items()
            ]
            top_pages.sort(key=lambda stats: (-stats.views, stats.page_path))

            return AnalyticsSummary(
                total_views=len(events),
                unique_sessions=len({e["session_id"] for e in events}),
                views_by_role=by_role,
                avg_time_on_page=_average([e["time_on_page"] for e in events if e.get("time_on_page") is not None]),
                avg_page_load_time=_average([e["page_load_time"] for e in events if e.get("page_load_time") is not None]),
                top_pages=top_pages[:top],
            )
        except Exception as e:
            logger.error(f"Error building analytics summary: {e}")
            raise HTTPException(status_code=500, detail="Failed to load analytics")
