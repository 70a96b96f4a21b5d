"""
Messaging routes.

HTTP:
    GET  /messages/unread-count          unread messages addressed to the caller
    GET  /messages/unread-by-client      per-client unread counts (coach)
    GET  /messages/{client_id}           conversation, oldest first; marks it read
    POST /messages/{client_id}           send a message
    POST /messages/{client_id}/read      mark the other party's messages read

WebSocket:
    /messages/ws/{client_id}?token={jwt}
        -> {"type": "connected", "messages": [...]}
        -> {"type": "message", "message": {...}}        new message from realtime
        <- {"type": "send", "content": "..."}
        -> {"type": "message_sent", "message": {...}}   its realtime echo is not sent
        <- {"type": "read"}
        -> {"type": "error", "detail": "..."}
    /messages/ws-unread?token={jwt}
        -> {"type": "unread_count", "count": n}
"""
import json
import logging
from typing import Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from supabase import AsyncClient, Client

from app.core.dependencies import (
    get_auth_service, get_current_profile, require_coach, check_client_access
)
from app.core.validation import validate_message, MAX_MESSAGE_LENGTH
from app.database.supabase_client import get_supabase, get_async_supabase
from app.modules.auth.service import AuthService
from app.modules.messaging.realtime import ConversationSubscription, UnreadCountSubscription
from app.modules.messaging.schemas import (
    MessageCreate, MessageResponse, MarkReadResponse, UnreadCountResponse, UnreadByClientResponse
)
from app.modules.messaging.service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


def get_message_service(supabase: Client = Depends(get_supabase)) -> MessageService:
    return MessageService(supabase)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    profile: Dict = Depends(get_current_profile),
    service: MessageService = Depends(get_message_service)
):
    return UnreadCountResponse(count=service.get_unread_count(profile["id"], profile["role"]))


@router.get("/unread-by-client", response_model=UnreadByClientResponse)
async def get_unread_by_client(
    profile: Dict = Depends(require_coach),
    service: MessageService = Depends(get_message_service)
):
    return UnreadByClientResponse(counts=service.get_unread_counts_by_client(profile["id"]))


@router.get("/{client_id}", response_model=List[MessageResponse])
async def get_messages(
    client_id: str,
    profile: Dict = Depends(get_current_profile),
    service: MessageService = Depends(get_message_service),
    supabase: Client = Depends(get_supabase)
):
    """Conversation between a client and their coach. Opening it marks the other party's messages read."""
    check_client_access(client_id, profile, supabase)
    messages = service.get_messages(client_id)
    service.mark_messages_as_read(client_id, profile["role"])
    return messages


@router.post("/{client_id}", response_model=MessageResponse, status_code=201)
async def send_message(
    client_id: str,
    message_data: MessageCreate,
    profile: Dict = Depends(get_current_profile),
    service: MessageService = Depends(get_message_service),
    supabase: Client = Depends(get_supabase)
):
    check_client_access(client_id, profile, supabase)
    return service.send_message(client_id, profile["role"], message_data.content)


@router.post("/{client_id}/read", response_model=MarkReadResponse)
async def mark_read(
    client_id: str,
    profile: Dict = Depends(get_current_profile),
    service: MessageService = Depends(get_message_service),
    supabase: Client = Depends(get_supabase)
):
    check_client_access(client_id, profile, supabase)
    return MarkReadResponse(marked=service.mark_messages_as_read(client_id, profile["role"]))


async def _authenticate_websocket(
    websocket: WebSocket, token: str, auth_service: AuthService
) -> Optional[dict]:
    """Resolve the profile behind a ?token= query param, closing the socket when it fails"""
    try:
        user = auth_service.get_current_user(token)
        profile = auth_service.get_profile_by_auth_id(user["id"])
    except HTTPException as e:
        logger.warning(f"WebSocket auth failed: {e.detail}")
        await websocket.close(code=4001, reason="Invalid token")
        return None
    except Exception as e:
        logger.error(f"WebSocket: error loading profile: {e}")
        await websocket.close(code=4000, reason="Server error")
        return None
    if not profile:
        await websocket.close(code=4003, reason="User profile not found")
        return None
    return profile


def _parse_frame(text: str) -> Tuple[Optional[dict], Optional[str]]:
    if text == "ping":
        return {"type": "ping"}, None
    try:
        data = json.loads(text)
    except ValueError:
        return None, "Invalid JSON"
    if not isinstance(data, dict):
        return None, "Invalid frame"
    return data, None


@router.websocket("/ws-unread")
async def unread_count_websocket(
    websocket: WebSocket,
    token: str = Query(...),
    auth_service: AuthService = Depends(get_auth_service),
    supabase: Client = Depends(get_supabase),
    realtime_client: AsyncClient = Depends(get_async_supabase)
):
    """Live unread message count of the authenticated user"""
    profile = await _authenticate_websocket(websocket, token, auth_service)
    if not profile:
        return

    await websocket.accept()

    async def send_count(count: int):
        await websocket.send_json({"type": "unread_count", "count": count})

    async def send_error(detail: str):
        await websocket.send_json({"type": "error", "detail": detail})

    subscription = UnreadCountSubscription(
        realtime_client, supabase, profile["id"], profile["role"],
        on_count=send_count, on_error=send_error
    )
    try:
        await subscription.start()
        while True:
            text = await websocket.receive_text()
            if text == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.info(f"Unread count WebSocket closed for user {profile['id']}")
    finally:
        await subscription.close()


@router.websocket("/ws/{client_id}")
async def conversation_websocket(
    websocket: WebSocket,
    client_id: str,
    token: str = Query(...),
    auth_service: AuthService = Depends(get_auth_service),
    supabase: Client = Depends(get_supabase),
    realtime_client: AsyncClient = Depends(get_async_supabase)
):
    """Live conversation: pushes new messages and accepts sends"""
    profile = await _authenticate_websocket(websocket, token, auth_service)
    if not profile:
        return
    try:
        check_client_access(client_id, profile, supabase)
    except HTTPException as e:
        await websocket.close(code=4004 if e.status_code == 404 else 4003, reason=e.detail)
        return

    await websocket.accept()
    service = MessageService(supabase)
    viewer_type = profile["role"]

    async def forward(message: dict):
        await websocket.send_json({"type": "message", "message": message})

    async def send_error(detail: str):
        await websocket.send_json({"type": "error", "detail": detail})

    subscription = ConversationSubscription(
        realtime_client, supabase, client_id, viewer_type,
        on_message=forward, on_error=send_error
    )
    try:
        await subscription.start()
        await websocket.send_json({
            "type": "connected",
            "client_id": client_id,
            "messages": subscription.messages,
        })

        while True:
            data, problem = _parse_frame(await websocket.receive_text())
            if problem:
                await send_error(problem)
                continue

            frame_type = data.get("type")
            if frame_type == "ping":
                await websocket.send_text("pong")
            elif frame_type == "send":
                content = data.get("content")
                if not isinstance(content, str) or not validate_message(content):
                    await send_error(f"Message must be between 1 and {MAX_MESSAGE_LENGTH} characters")
                    continue
                try:
                    message = service.send_message(client_id, viewer_type, content)
                except HTTPException as e:
                    await send_error(e.detail)
                    continue
                payload = message.model_dump(mode="json")
                # known id: the realtime INSERT for this row is dropped
                subscription.remember(payload)
                await websocket.send_json({"type": "message_sent", "message": payload})
            elif frame_type == "read":
                service.mark_messages_as_read(client_id, viewer_type)
            else:
                await send_error(f"Unknown frame type: {frame_type}")
    except WebSocketDisconnect:
        logger.info(f"Conversation WebSocket closed for client {client_id}")
    except HTTPException as e:
        logger.warning(f"Conversation WebSocket for client {client_id} failed: {e.detail}")
        await websocket.close(code=4000, reason=e.detail)
    finally:
        await subscription.close()
