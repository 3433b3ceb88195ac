from fastapi import APIRouter, Depends
from rewards.core.dependencies import get_app_user
from rewards.database.supabase_client import get_service_supabase
from rewards.modules.tasks.schemas import TaskResponse, DailyTaskStats, TaskCompletionResponse
from rewards.modules.tasks.service import TaskService
from supabase import Client
from typing import Any, Dict, List

router = APIRouter(prefix="/tasks", tags=["tasks"])


def get_task_service(supabase: Client = Depends(get_service_supabase)) -> TaskService:
    return TaskService(supabase)


@router.get("", response_model=List[TaskResponse])
def list_tasks(
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: TaskService = Depends(get_task_service)
):
    """List active tasks"""
    return service.list_tasks()


@router.get("/stats", response_model=DailyTaskStats)
def daily_stats(
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: TaskService = Depends(get_task_service)
):
    """Today's completions against the tier's daily limit"""
    return service.get_daily_stats(app_user)


@router.post("/{task_id}/complete", response_model=TaskCompletionResponse, status_code=201)
def complete_task(
    task_id: str,
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: TaskService = Depends(get_task_service)
):
    """Complete a task once per day and collect the tier's reward"""
    return service.complete_task(app_user, task_id)
