from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class TaskResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    video_url: Optional[str] = None
    duration_seconds: int = 30
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DailyTaskStats(BaseModel):
    tier_code: str
    completed_today: int
    daily_limit: int
    remaining: int
    completed_task_ids: List[str]


class TaskCompletionResponse(BaseModel):
    completion_id: str
    task_id: str
    reward_earned: float
    income_wallet_balance: float
    remaining: int
