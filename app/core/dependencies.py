"""
Core dependencies for route protection and ownership checks.

The API talks to Supabase with the service-role key, so the row-level rules
(coach owns client, client owns conversation, token grants group access) are
checked here before services touch the data.
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase, get_auth_supabase
from app.modules.auth.service import AuthService
from supabase import Client
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(
    auth_client: Client = Depends(get_auth_supabase),
    supabase: Client = Depends(get_supabase)
) -> AuthService:
    return AuthService(auth_client, supabase)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current auth user info from JWT token"""
    return auth_service.get_current_user(token)


def _get_request_cache(request: Request) -> Dict[str, Any]:
    if not hasattr(request.state, "profile_cache"):
        request.state.profile_cache = {}
    return request.state.profile_cache


def get_current_profile(
    request: Request,
    user_data: dict = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Resolve the platform users row for the authenticated user. Cached per request."""
    cache = _get_request_cache(request)
    if "profile" in cache:
        return cache["profile"]
    try:
        profile = auth_service.get_profile_by_auth_id(user_data["id"])
    except Exception as e:
        logger.error(f"Error loading user profile: {e}")
        raise HTTPException(status_code=500, detail="Failed to load user profile")
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User profile not found"
        )
    cache["profile"] = profile
    return profile


def require_role(required_role: str):
    """Factory function to create a role check dependency"""
    def check_role(profile: dict = Depends(get_current_profile)) -> dict:
        if profile.get("role") != required_role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only {required_role}s can perform this action"
            )
        return profile
    return check_role


require_coach = require_role("coach")
require_client = require_role("client")


def check_client_access(client_id: str, profile: dict, supabase: Client) -> dict:
    """Allow the coach who owns the client record, or the client themself. Returns the clients row."""
    result = supabase.table("clients")\
        .select("*")\
        .eq("id", client_id)\
        .limit(1)\
        .execute()
    if not result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )
    client = result.data[0]
    if profile.get("role") == "coach" and client.get("coach_id") == profile["id"]:
        return client
    if profile.get("role") == "client" and client.get("user_id") == profile["id"]:
        return client
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You do not have access to this client"
    )


def check_client_owner(client_id: str, profile: dict, supabase: Client) -> dict:
    """Allow only the coach who owns the client record"""
    if profile.get("role") != "coach":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only coaches can perform this action"
        )
    return check_client_access(client_id, profile, supabase)


def get_own_client_record(profile: dict, supabase: Client) -> dict:
    """The clients row of an authenticated client user"""
    result = supabase.table("clients")\
        .select("*")\
        .eq("user_id", profile["id"])\
        .limit(1)\
        .execute()
    if not result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Could not find your client record"
        )
    return result.data[0]


def check_planning_group_owner(group_id: str, profile: dict, supabase: Client) -> dict:
    """Allow only the coach who created the planning group. Returns the group row."""
    result = supabase.table("planning_groups")\
        .select("*")\
        .eq("id", group_id)\
        .limit(1)\
        .execute()
    if not result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Planning group not found"
        )
    group = result.data[0]
    if group.get("coach_id") != profile["id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be the coach of this planning group"
        )
    return group


def get_planning_group_by_token(
    access_token: str,
    supabase: Client = Depends(get_supabase)
) -> dict:
    """Resolve the planning group a share link points at"""
    result = supabase.table("planning_groups")\
        .select("*")\
        .eq("access_token", access_token)\
        .limit(1)\
        .execute()
    if not result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Planning group not found"
        )
    return result.data[0]


optional_security = HTTPBearer(auto_error=False)


def get_optional_profile(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[dict]:
    """Profile of the caller when a valid bearer token is sent, else None (anonymous)"""
    if not credentials:
        return None
    try:
        user = auth_service.get_current_user(credentials.credentials)
        return auth_service.get_profile_by_auth_id(user["id"])
    except HTTPException:
        return None
