from supabase import Client
from app.modules.messaging.schemas import MessageResponse
from fastapi import HTTPException
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


def other_party(viewer_type: str) -> str:
    return "client" if viewer_type == "coach" else "coach"


class MessageService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_messages(self, client_id: str) -> List[MessageResponse]:
        """Whole conversation of a client with their coach, oldest first"""
        try:
            result = self.supabase.table("messages")\
                .select("*")\
                .eq("client_id", client_id)\
                .order("created_at")\
                .execute()
            return [MessageResponse(**m) for m in (result.data or [])]
        except Exception as e:
            logger.error(f"Error loading messages for client {client_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load messages")

    def send_message(self, client_id: str, sender_type: str, content: str) -> MessageResponse:
        try:
            result = self.supabase.table("messages").insert({
                "client_id": client_id,
                "sender_type": sender_type,
                "content": content,
                "is_read": False,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to send message")

            return MessageResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error sending message for client {client_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to send message")

    def mark_messages_as_read(self, client_id: str, viewer_type: str) -> int:
        """Mark the other party's unread messages in a conversation as read. Returns rows updated."""
        try:
            result = self.supabase.table("messages")\
                .update({
                    "is_read": True,
                    "read_at": datetime.now(timezone.utc).isoformat(),
                })\
                .eq("client_id", client_id)\
                .eq("sender_type", other_party(viewer_type))\
                .eq("is_read", False)\
                .execute()
            return len(result.data or [])
        except Exception as e:
            logger.error(f"Error marking messages read for client {client_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to mark messages as read")

    def _coach_client_ids(self, coach_id: str) -> List[str]:
        result = self.supabase.table("clients")\
            .select("id")\
            .eq("coach_id", coach_id)\
            .execute()
        return [c["id"] for c in (result.data or [])]

    def _own_client_id(self, user_id: str) -> Optional[str]:
        result = self.supabase.table("clients")\
            .select("id")\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0]["id"] if result.data else None

    def get_unread_count(self, user_id: str, role: str) -> int:
        """
        Unread messages addressed to a user.

        Coaches count unread client messages across all their clients, clients
        count unread coach messages in their own conversation.
        """
        try:
            if role == "coach":
                client_ids = self._coach_client_ids(user_id)
                if not client_ids:
                    return 0
                result = self.supabase.table("messages")\
                    .select("id", count="exact")\
                    .eq("sender_type", "client")\
                    .eq("is_read", False)\
                    .in_("client_id", client_ids)\
                    .execute()
            else:
                client_id = self._own_client_id(user_id)
                if not client_id:
                    return 0
                result = self.supabase.table("messages")\
                    .select("id", count="exact")\
                    .eq("client_id", client_id)\
                    .eq("sender_type", "coach")\
                    .eq("is_read", False)\
                    .execute()
            if result.count is not None:
                return result.count
            return len(result.data or [])
        except Exception as e:
            logger.error(f"Error counting unread messages for user {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load unread count")

    def get_unread_counts_by_client(self, coach_id: str) -> Dict[str, int]:
        """Unread client messages per client id, for the coach's client list"""
        try:
            client_ids = self._coach_client_ids(coach_id)
            if not client_ids:
                return {}
            result = self.supabase.table("messages")\
                .select("client_id")\
                .eq("sender_type", "client")\
                .eq("is_read", False)\
                .in_("client_id", client_ids)\
                .execute()
            counts: Dict[str, int] = {}
            for message in result.data or []:
                counts[message["client_id"]] = counts.get(message["client_id"], 0) + 1
            return counts
        except Exception as e:
            logger.error(f"Error counting unread messages by client for coach {coach_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load unread counts")
