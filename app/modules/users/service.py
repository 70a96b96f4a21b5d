from supabase import Client
from app.modules.users.schemas import UserUpdate, UserResponse
from fastapi import HTTPException


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_user_by_id(self, user_id: str) -> UserResponse:
        """Get user profile by ID"""
        try:
            result = self.supabase.table("users")\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="User not found")

            return UserResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to load user: {str(e)}")

    def update_user(self, user_id: str, user_data: UserUpdate) -> UserResponse:
        """Update the display name of a profile"""
        try:
            result = self.supabase.table("users")\
                .update({"name": user_data.name})\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="User not found")

            return UserResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to update user: {str(e)}")

    def is_coach_of(self, coach_id: str, user_id: str) -> bool:
        """True if user_id is a client of coach_id"""
        result = self.supabase.table("clients")\
            .select("id")\
            .eq("coach_id", coach_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return bool(result.data)
