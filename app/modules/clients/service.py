from supabase import Client
from app.modules.clients.schemas import ClientCreate, ClientResponse
from app.core.tokens import (
    generate_secure_password, format_client_identifier, client_identifier_prefix, parse_identifier_sequence,
    is_valid_client_identifier,
)
from app.core.pagination import paginate, get_pagination_pages
from typing import Dict, List, Optional, Any
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

_IDENTIFIER_ATTEMPTS = 3


class ClientService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _load_users(self, user_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        if not user_ids:
            return {}
        result = self.supabase.table("users")\
            .select("id, email, client_identifier, has_auth_access")\
            .in_("id", user_ids)\
            .execute()
        return {u["id"]: u for u in (result.data or [])}

    def _to_response(self, client: dict, user: Optional[dict], unread_count: int = 0) -> ClientResponse:
        user = user or {}
        return ClientResponse(
            **client,
            email=user.get("email"),
            client_identifier=user.get("client_identifier"),
            has_auth_access=user.get("has_auth_access", True) is not False,
            unread_count=unread_count,
        )

    def list_clients(
        self,
        coach_id: str,
        unread_counts: Optional[Dict[str, int]] = None,
    ) -> List[ClientResponse]:
        """All clients of a coach, newest first, with login details and unread message counts"""
        try:
            result = self.supabase.table("clients")\
                .select("*")\
                .eq("coach_id", coach_id)\
                .order("created_at", desc=True)\
                .execute()
            clients = result.data or []
            users = self._load_users([c["user_id"] for c in clients])
            counts = unread_counts or {}
            return [self._to_response(c, users.get(c["user_id"]), counts.get(c["id"], 0)) for c in clients]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error listing clients for coach {coach_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load clients")

    def list_clients_page(
        self,
        coach_id: str,
        page: int = 1,
        page_size: int = 20,
        unread_counts: Optional[Dict[str, int]] = None,
    ) -> Dict[str, Any]:
        clients = self.list_clients(coach_id, unread_counts)
        data = paginate(clients, page, page_size)
        data["pages"] = get_pagination_pages(data["total_pages"], data["page"])
        return data

    def get_client(self, client: dict) -> ClientResponse:
        """Expand an already-authorized clients row with its user details"""
        try:
            users = self._load_users([client["user_id"]])
            return self._to_response(client, users.get(client["user_id"]))
        except Exception as e:
            logger.error(f"Error loading client {client.get('id')}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load client")

    def generate_client_identifier(self, coach_id: str) -> str:
        """Next free coach{xxxx}_client{NNN} identifier for this coach"""
        prefix = client_identifier_prefix(coach_id)
        result = self.supabase.table("users")\
            .select("client_identifier")\
            .like("client_identifier", f"{prefix}%")\
            .order("client_identifier", desc=True)\
            .execute()
        highest = 0
        for row in result.data or []:
            highest = max(highest, parse_identifier_sequence(row.get("client_identifier") or ""))
        return format_client_identifier(coach_id, highest + 1)

    def _email_in_use(self, email: str) -> bool:
        result = self.supabase.table("users")\
            .select("id")\
            .eq("email", email)\
            .limit(1)\
            .execute()
        return bool(result.data)

    def _create_login_profile(self, data: ClientCreate) -> dict:
        """Auth account with a random password plus its users row"""
        if self._email_in_use(data.email):
            raise HTTPException(status_code=400, detail="A user with this email already exists")
        try:
            auth_response = self.supabase.auth.admin.create_user({
                "email": data.email,
                "password": generate_secure_password(),
                "email_confirm": True,
            })
        except Exception as e:
            error_message = str(e).lower()
            if "already" in error_message:
                raise HTTPException(status_code=400, detail="A user with this email already exists")
            logger.error(f"Failed to create auth user for client: {e}")
            raise HTTPException(status_code=500, detail="Failed to create client account")
        if not auth_response.user:
            raise HTTPException(status_code=500, detail="Failed to create client account")

        auth_user_id = auth_response.user.id
        try:
            result = self.supabase.table("users").insert({
                "auth_user_id": auth_user_id,
                "email": data.email,
                "client_identifier": None,
                "name": data.name,
                "role": "client",
                "has_auth_access": True,
            }).execute()
            if not result.data:
                raise RuntimeError("profile insert returned no rows")
            return result.data[0]
        except Exception as e:
            logger.error(f"Failed to create client profile: {e}")
            try:
                self.supabase.auth.admin.delete_user(auth_user_id)
            except Exception as cleanup_error:
                logger.error(f"Error cleaning up auth user {auth_user_id[:10]}: {cleanup_error}")
            raise HTTPException(status_code=500, detail="Failed to create user profile")

    def _create_identifier_profile(self, coach_id: str, data: ClientCreate) -> dict:
        """Profile without login, addressed by a generated client identifier"""
        last_error: Optional[Exception] = None
        for _ in range(_IDENTIFIER_ATTEMPTS):
            identifier = self.generate_client_identifier(coach_id)
            if not is_valid_client_identifier(identifier):
                logger.error(f"Generated malformed client identifier {identifier} for coach {coach_id}")
                break
            try:
                result = self.supabase.table("users").insert({
                    "auth_user_id": None,
                    "email": None,
                    "client_identifier": identifier,
                    "name": data.name,
                    "role": "client",
                    "has_auth_access": False,
                }).execute()
                if result.data:
                    return result.data[0]
            except Exception as e:
                # unique violation when another request took the same identifier
                logger.warning(f"Client identifier {identifier} could not be used: {e}")
                last_error = e
        logger.error(f"Failed to generate client identifier for coach {coach_id}: {last_error}")
        raise HTTPException(status_code=500, detail="Failed to generate client identifier")

    def create_client(self, coach_id: str, data: ClientCreate) -> ClientResponse:
        """Create a client with an email login, or an identifier-only client"""
        try:
            if data.email:
                user = self._create_login_profile(data)
            else:
                user = self._create_identifier_profile(coach_id, data)

            result = self.supabase.table("clients").insert({
                "coach_id": coach_id,
                "user_id": user["id"],
                "name": data.name,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add client")

            logger.info(f"Coach {coach_id} added client {result.data[0]['id']} (login: {bool(data.email)})")
            return self._to_response(result.data[0], user)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating client: {e}")
            raise HTTPException(status_code=500, detail="Failed to add client")

    def delete_client(self, client: dict) -> bool:
        """Delete a client with their tasks and messages; identifier-only profiles go too"""
        try:
            client_id = client["id"]
            self.supabase.table("messages")\
                .delete()\
                .eq("client_id", client_id)\
                .execute()

            self.supabase.table("client_tasks")\
                .delete()\
                .eq("client_id", client_id)\
                .execute()

            result = self.supabase.table("clients")\
                .delete()\
                .eq("id", client_id)\
                .execute()

            users = self._load_users([client["user_id"]])
            user = users.get(client["user_id"])
            if user and user.get("has_auth_access") is False:
                self.supabase.table("users")\
                    .delete()\
                    .eq("id", client["user_id"])\
                    .execute()

            return len(result.data or []) > 0
        except Exception as e:
            logger.error(f"Error deleting client {client.get('id')}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete client")
