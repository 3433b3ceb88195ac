from pydantic import BaseModel
from typing import List, Optional


class TierResponse(BaseModel):
    id: Optional[str] = None
    code: str
    name: str
    rank: int
    price: float = 0
    daily_task_limit: int
    reward_per_task: float
    membership_type: str
    trial_days: int = 0
    is_active: bool = True

    class Config:
        from_attributes = True


class TierChangeRequest(BaseModel):
    tier_code: str


class TierChangeResponse(BaseModel):
    user_id: str
    previous_tier_code: Optional[str] = None
    tier_code: str
    membership_type: str


class TierActivationResponse(BaseModel):
    user_id: str
    previous_tier_code: Optional[str] = None
    tier_code: str
    price: float
    new_balance: float


class MembershipStatus(BaseModel):
    membership_type: Optional[str] = None
    membership_level: Optional[str] = None
    is_trial_active: bool = False
    trial_end_date: Optional[str] = None


class CurrentTierResponse(BaseModel):
    tier: TierResponse
    membership: MembershipStatus
    total_invested: float = 0
    next_tiers: List[TierResponse]
