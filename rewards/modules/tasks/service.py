from supabase import Client
from rewards.core.errors import is_unique_violation
from rewards.core.ledger import apply_wallet_change
from rewards.modules.tasks.schemas import TaskResponse, DailyTaskStats, TaskCompletionResponse
from rewards.modules.tiers.schemas import TierResponse
from rewards.modules.tiers.service import TierService
from typing import Any, Callable, Dict, List, Optional
from fastapi import HTTPException
from datetime import date
import logging

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, supabase: Client, today: Callable[[], date] = date.today):
        self.supabase = supabase
        self.tier_service = TierService(supabase)
        self.today = today

    def list_tasks(self) -> List[TaskResponse]:
        """List active tasks"""
        result = self.supabase.table("tasks")\
            .select("*")\
            .eq("is_active", True)\
            .order("created_at")\
            .execute()
        return [TaskResponse(**row) for row in (result.data or [])]

    def _tier_for(self, user: Dict[str, Any]) -> TierResponse:
        tier = self.tier_service.get_tier(user.get("vip_level"))
        if tier is None:
            logger.error(f"User {user['id']} has vip_level {user.get('vip_level')!r} with no catalog row")
            raise HTTPException(status_code=500, detail="User tier is not in the tier catalog")
        return tier

    def get_daily_stats(self, user: Dict[str, Any], tier: Optional[TierResponse] = None) -> DailyTaskStats:
        tier = tier or self._tier_for(user)
        result = self.supabase.table("task_completions")\
            .select("task_id")\
            .eq("user_id", user["id"])\
            .eq("completion_date", self.today().isoformat())\
            .execute()
        completed_ids = [str(row["task_id"]) for row in (result.data or [])]
        return DailyTaskStats(
            tier_code=tier.code,
            completed_today=len(completed_ids),
            daily_limit=tier.daily_task_limit,
            remaining=max(0, tier.daily_task_limit - len(completed_ids)),
            completed_task_ids=completed_ids,
        )

    def complete_task(self, user: Dict[str, Any], task_id: str) -> TaskCompletionResponse:
        task_result = self.supabase.table("tasks")\
            .select("id, title, is_active")\
            .eq("id", task_id)\
            .limit(1)\
            .execute()
        if not task_result.data or not task_result.data[0].get("is_active", True):
            raise HTTPException(status_code=404, detail="Task not found")
        task = task_result.data[0]

        tier = self._tier_for(user)
        stats = self.get_daily_stats(user, tier)
        if task_id in stats.completed_task_ids:
            raise HTTPException(status_code=409, detail="Task already completed today")
        if stats.remaining <= 0:
            raise HTTPException(status_code=400, detail=f"Daily task limit reached ({stats.daily_limit})")

        reward = float(tier.reward_per_task)
        try:
            result = self.supabase.table("task_completions").insert({
                "user_id": user["id"],
                "task_id": task_id,
                "completion_date": self.today().isoformat(),
                "reward_earned": reward,
                "status": "completed",
            }).execute()
        except Exception as e:
            if is_unique_violation(e):
                raise HTTPException(status_code=409, detail="Task already completed today")
            raise
        completion = result.data[0]

        try:
            balances = apply_wallet_change(
                self.supabase, user["id"], "income_wallet_balance", reward,
                record_type="task_reward", description=f"Task reward: {task.get('title', task_id)}",
                reference_id=completion["id"], reference_type="task_completion",
                add_to_total_earnings=True,
            )
        except HTTPException:
            self._remove_completion(completion["id"])
            raise
        except Exception as e:
            logger.error(f"Crediting task {task_id} for user {user['id']} failed; removing completion: {e}")
            self._remove_completion(completion["id"])
            raise HTTPException(status_code=500, detail="Failed to record task reward")

        return TaskCompletionResponse(
            completion_id=completion["id"],
            task_id=task_id,
            reward_earned=reward,
            income_wallet_balance=balances["income_wallet_balance"],
            remaining=max(0, stats.remaining - 1),
        )

    def _remove_completion(self, completion_id: str) -> None:
        self.supabase.table("task_completions").delete().eq("id", completion_id).execute()
