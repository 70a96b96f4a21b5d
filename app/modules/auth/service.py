import hashlib
import logging
import time
from supabase import Client
from app.modules.auth.schemas import SignupRequest, AuthUser, SessionInfo
from fastapi import HTTPException
from typing import Dict, Any, Optional, Tuple

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache():
    _AUTH_USER_CACHE.clear()


class AuthService:
    def __init__(self, auth_client: Client, db: Client):
        self.auth_client = auth_client
        self.db = db

    def get_profile_by_auth_id(self, auth_user_id: str) -> Optional[Dict[str, Any]]:
        """Return the public users row linked to an auth user, or None"""
        result = self.db.table("users")\
            .select("*")\
            .eq("auth_user_id", auth_user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def login(self, email: str, password: str) -> Tuple[AuthUser, SessionInfo]:
        """Authenticate with Supabase Auth and resolve the user's profile role"""
        try:
            auth_response = self.auth_client.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except Exception as e:
            logger.warning(f"Login attempt failed for {email[:5]}: {e}")
            # Don't reveal whether the email exists
            raise HTTPException(status_code=401, detail="Invalid email or password")

        if not auth_response.user or not auth_response.session:
            logger.warning(f"Login attempt failed for {email[:5]}: no session returned")
            raise HTTPException(status_code=401, detail="Invalid email or password")

        try:
            profile = self.get_profile_by_auth_id(auth_response.user.id)
        except Exception as e:
            logger.error(f"Error loading profile after login: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")
        if not profile:
            logger.warning(f"User profile not found after login for auth user {auth_response.user.id[:10]}")
            raise HTTPException(status_code=400, detail="User profile not found")

        logger.info(f"User logged in successfully: {email[:5]} ({profile['role']})")
        session = auth_response.session
        return (
            AuthUser(
                id=auth_response.user.id,
                email=auth_response.user.email or email,
                role=profile["role"],
                name=profile.get("name"),
            ),
            SessionInfo(
                access_token=session.access_token,
                refresh_token=getattr(session, "refresh_token", None),
                expires_at=getattr(session, "expires_at", None),
            ),
        )

    def signup(self, signup_data: SignupRequest) -> AuthUser:
        """Create the Supabase Auth user and its users profile; roll back the auth user if the profile fails"""
        email = str(signup_data.email)
        try:
            auth_response = self.auth_client.auth.sign_up({
                "email": email,
                "password": signup_data.password,
            })
        except Exception as e:
            error_message = str(e).lower()
            logger.warning(f"Signup attempt failed for {email[:5]}: {e}")
            if "already registered" in error_message or "already exists" in error_message:
                raise HTTPException(status_code=400, detail="Email already registered")
            if "valid email" in error_message:
                raise HTTPException(status_code=400, detail="Invalid email format")
            raise HTTPException(status_code=400, detail="Signup failed. Please try again.")

        if not auth_response.user:
            raise HTTPException(status_code=400, detail="Signup failed. Please try again.")

        auth_user_id = auth_response.user.id
        try:
            result = self.db.table("users").insert({
                "auth_user_id": auth_user_id,
                "email": auth_response.user.email or email,
                "name": signup_data.name,
                "role": signup_data.role,
                "has_auth_access": True,
                "client_identifier": None,
            }).execute()
            if not result.data:
                raise RuntimeError("profile insert returned no rows")
        except Exception as e:
            logger.error(f"Failed to create user profile for auth user {auth_user_id[:10]}: {e}")
            self._delete_auth_user(auth_user_id)
            raise HTTPException(status_code=500, detail="Failed to create user profile")

        logger.info(f"User signed up successfully: {email[:5]} ({signup_data.role})")
        return AuthUser(
            id=auth_user_id,
            email=auth_response.user.email or email,
            role=signup_data.role,
            name=signup_data.name,
        )

    def _delete_auth_user(self, auth_user_id: str) -> None:
        try:
            self.db.auth.admin.delete_user(auth_user_id)
        except Exception as e:
            logger.error(f"Error cleaning up auth user {auth_user_id[:10]}: {e}")

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.auth_client.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "app_metadata": user.app_metadata or {},
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def logout(self, token: str) -> bool:
        """Drop the cached token lookup and revoke the caller's refresh tokens"""
        _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
        try:
            # The access token itself stays valid until it expires
            self.auth_client.auth.admin.sign_out(token, "global")
            return True
        except Exception as e:
            logger.warning(f"Sign out failed: {e}")
            return False
