from fastapi import APIRouter, Depends, HTTPException, Query
from app.database.supabase_client import get_supabase
from app.modules.clients.schemas import ClientCreate, ClientResponse, ClientPage
from app.modules.clients.service import ClientService
from app.modules.messaging.service import MessageService
from app.core.dependencies import (
    require_coach, require_client, check_client_owner, get_own_client_record
)
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/clients", tags=["clients"])


def get_client_service(supabase: Client = Depends(get_supabase)) -> ClientService:
    return ClientService(supabase)


@router.get("", response_model=ClientPage)
async def list_clients(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    profile: Dict = Depends(require_coach),
    service: ClientService = Depends(get_client_service),
    supabase: Client = Depends(get_supabase)
):
    """List the coach's clients, newest first, with unread message counts"""
    unread_counts = MessageService(supabase).get_unread_counts_by_client(profile["id"])
    return service.list_clients_page(profile["id"], page, page_size, unread_counts)


@router.post("", response_model=ClientResponse, status_code=201)
async def create_client(
    client_data: ClientCreate,
    profile: Dict = Depends(require_coach),
    service: ClientService = Depends(get_client_service)
):
    """Add a client. With an email they get a login, without one a generated identifier."""
    return service.create_client(profile["id"], client_data)


@router.get("/me", response_model=ClientResponse)
async def get_my_client_record(
    profile: Dict = Depends(require_client),
    service: ClientService = Depends(get_client_service),
    supabase: Client = Depends(get_supabase)
):
    """The client record of the logged-in client"""
    return service.get_client(get_own_client_record(profile, supabase))


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: str,
    profile: Dict = Depends(require_coach),
    service: ClientService = Depends(get_client_service),
    supabase: Client = Depends(get_supabase)
):
    client = check_client_owner(client_id, profile, supabase)
    return service.get_client(client)


@router.delete("/{client_id}", status_code=204)
async def delete_client(
    client_id: str,
    profile: Dict = Depends(require_coach),
    service: ClientService = Depends(get_client_service),
    supabase: Client = Depends(get_supabase)
):
    """Remove a client together with their task assignments and messages"""
    client = check_client_owner(client_id, profile, supabase)
    if not service.delete_client(client):
        raise HTTPException(status_code=404, detail="Client not found")
    return None
