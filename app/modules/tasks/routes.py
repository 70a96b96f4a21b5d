from fastapi import APIRouter, Depends, HTTPException, status
from app.database.supabase_client import get_supabase
from app.modules.tasks.schemas import TaskCreate, ClientTaskStatusUpdate, ClientTaskResponse
from app.modules.tasks.service import TaskService
from app.core.dependencies import (
    get_current_profile, require_coach, require_client,
    check_client_access, check_client_owner, get_own_client_record
)
from supabase import Client
from typing import List, Dict

router = APIRouter(tags=["tasks"])


def get_task_service(supabase: Client = Depends(get_supabase)) -> TaskService:
    return TaskService(supabase)


@router.post("/clients/{client_id}/tasks", response_model=ClientTaskResponse, status_code=201)
async def create_task(
    client_id: str,
    task_data: TaskCreate,
    profile: Dict = Depends(require_coach),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    """Create a task and assign it to one of the coach's clients"""
    check_client_owner(client_id, profile, supabase)
    return service.create_task_for_client(profile["id"], client_id, task_data)


@router.get("/clients/{client_id}/tasks", response_model=List[ClientTaskResponse])
async def list_client_tasks(
    client_id: str,
    profile: Dict = Depends(get_current_profile),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    check_client_access(client_id, profile, supabase)
    return service.list_client_tasks(client_id)


@router.get("/tasks/me", response_model=List[ClientTaskResponse])
async def list_my_tasks(
    profile: Dict = Depends(require_client),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    """Tasks assigned to the logged-in client"""
    client = get_own_client_record(profile, supabase)
    return service.list_client_tasks(client["id"])


@router.patch("/client-tasks/{client_task_id}", response_model=ClientTaskResponse)
async def update_task_status(
    client_task_id: str,
    status_data: ClientTaskStatusUpdate,
    profile: Dict = Depends(get_current_profile),
    service: TaskService = Depends(get_task_service),
    supabase: Client = Depends(get_supabase)
):
    """Mark an assignment pending or completed (the client, or their coach)"""
    assignment = service.get_client_task(client_task_id)
    check_client_access(assignment["client_id"], profile, supabase)
    return service.update_status(client_task_id, status_data.status)


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    profile: Dict = Depends(require_coach),
    service: TaskService = Depends(get_task_service)
):
    task = service.get_task(task_id)
    if task.get("coach_id") != profile["id"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only delete your own tasks")
    service.delete_task(task_id)
    return None
