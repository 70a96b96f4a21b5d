from supabase import Client
from app.modules.tasks.schemas import TaskCreate, TaskResponse, ClientTaskResponse
from fastapi import HTTPException
from datetime import datetime, timezone
from typing import Dict, List, Any
import logging

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _load_tasks(self, task_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        if not task_ids:
            return {}
        result = self.supabase.table("tasks")\
            .select("*")\
            .in_("id", task_ids)\
            .execute()
        return {t["id"]: t for t in (result.data or [])}

    def _with_tasks(self, assignments: List[dict]) -> List[ClientTaskResponse]:
        tasks = self._load_tasks(list({a["task_id"] for a in assignments}))
        responses = []
        for assignment in assignments:
            task = tasks.get(assignment["task_id"])
            responses.append(ClientTaskResponse(
                **assignment,
                task=TaskResponse(**task) if task else None,
            ))
        return responses

    def create_task_for_client(self, coach_id: str, client_id: str, task_data: TaskCreate) -> ClientTaskResponse:
        """Create a task and assign it to one client as pending"""
        try:
            task_result = self.supabase.table("tasks").insert({
                "coach_id": coach_id,
                "title": task_data.title,
                "description": task_data.description,
            }).execute()

            if not task_result.data:
                raise HTTPException(status_code=500, detail="Failed to create task")

            task = task_result.data[0]
            try:
                assignment_result = self.supabase.table("client_tasks").insert({
                    "client_id": client_id,
                    "task_id": task["id"],
                    "status": "pending",
                }).execute()
                if not assignment_result.data:
                    raise RuntimeError("assignment insert returned no rows")
            except Exception as e:
                logger.error(f"Failed to assign task {task['id']} to client {client_id}: {e}")
                self.supabase.table("tasks")\
                    .delete()\
                    .eq("id", task["id"])\
                    .execute()
                raise HTTPException(status_code=500, detail="Failed to assign task")

            logger.info(f"Coach {coach_id} assigned task {task['id']} to client {client_id}")
            return ClientTaskResponse(**assignment_result.data[0], task=TaskResponse(**task))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating task: {e}")
            raise HTTPException(status_code=500, detail="Failed to create task")

    def list_client_tasks(self, client_id: str) -> List[ClientTaskResponse]:
        """Assignments of a client, newest first"""
        try:
            result = self.supabase.table("client_tasks")\
                .select("*")\
                .eq("client_id", client_id)\
                .order("created_at", desc=True)\
                .execute()
            return self._with_tasks(result.data or [])
        except Exception as e:
            logger.error(f"Error loading tasks for client {client_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load tasks")

    def get_client_task(self, client_task_id: str) -> dict:
        result = self.supabase.table("client_tasks")\
            .select("*")\
            .eq("id", client_task_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Task not found")
        return result.data[0]

    def update_status(self, client_task_id: str, status: str) -> ClientTaskResponse:
        """Set an assignment's status; completed_at follows it"""
        try:
            completed_at = datetime.now(timezone.utc).isoformat() if status == "completed" else None
            result = self.supabase.table("client_tasks")\
                .update({"status": status, "completed_at": completed_at})\
                .eq("id", client_task_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Task not found")

            return self._with_tasks(result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating task {client_task_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update task")

    def get_task(self, task_id: str) -> dict:
        result = self.supabase.table("tasks")\
            .select("*")\
            .eq("id", task_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Task not found")
        return result.data[0]

    def delete_task(self, task_id: str) -> bool:
        """Delete a task and every assignment of it"""
        try:
            self.supabase.table("client_tasks")\
                .delete()\
                .eq("task_id", task_id)\
                .execute()

            result = self.supabase.table("tasks")\
                .delete()\
                .eq("id", task_id)\
                .execute()

            return len(result.data or []) > 0
        except Exception as e:
            logger.error(f"Error deleting task {task_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete task")
