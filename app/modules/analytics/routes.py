from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.analytics.schemas import PageViewCreate, PageViewUpdate, PageViewResponse, AnalyticsSummary
from app.modules.analytics.service import AnalyticsService
from app.core.dependencies import require_coach, get_optional_profile
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/analytics", tags=["analytics"])


def get_analytics_service(supabase: Client = Depends(get_supabase)) -> AnalyticsService:
    return AnalyticsService(supabase)


@router.post("/page-views", response_model=PageViewResponse, status_code=201)
async def track_page_view(
    view: PageViewCreate,
    profile: Optional[Dict] = Depends(get_optional_profile),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """Track a page view; works logged in or anonymous"""
    return service.record_page_view(view, profile)


@router.patch("/page-views/{event_id}", response_model=PageViewResponse)
async def track_time_on_page(
    event_id: str,
    update: PageViewUpdate,
    service: AnalyticsService = Depends(get_analytics_service)
):
    return service.record_time_on_page(event_id, update)


@router.get("/summary", response_model=AnalyticsSummary)
async def get_summary(
    days: Optional[int] = Query(None, ge=1, le=365),
    top: int = Query(10, ge=1, le=100),
    profile: Dict = Depends(require_coach),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """Site usage summary for coaches"""
    return service.get_summary(days, top)
