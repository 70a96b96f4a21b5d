from fastapi import APIRouter, Depends, HTTPException, status
from app.database.supabase_client import get_supabase
from app.modules.users.schemas import UserUpdate, UserResponse
from app.modules.users.service import UserService
from app.core.dependencies import get_current_profile
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(supabase: Client = Depends(get_supabase)) -> UserService:
    return UserService(supabase)


@router.get("/me", response_model=UserResponse)
async def get_me(profile: Dict = Depends(get_current_profile)):
    """Get the current user's profile"""
    return UserResponse(**profile)


@router.put("/me", response_model=UserResponse)
async def update_me(
    user_data: UserUpdate,
    profile: Dict = Depends(get_current_profile),
    service: UserService = Depends(get_user_service)
):
    """Update the current user's display name"""
    return service.update_user(profile["id"], user_data)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    profile: Dict = Depends(get_current_profile),
    service: UserService = Depends(get_user_service)
):
    """Get a profile: your own, or one of your clients' if you are a coach"""
    if user_id != profile["id"]:
        if profile.get("role") != "coach" or not service.is_coach_of(profile["id"], user_id):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not accessible")
    return service.get_user_by_id(user_id)
