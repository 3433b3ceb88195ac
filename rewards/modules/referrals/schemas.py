from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from rewards.core.pagination import Pagination


class ReferralLinkRequest(BaseModel):
    referral_code: str = Field(..., min_length=6, max_length=20)


class ReferralLinkData(BaseModel):
    referrer_id: str
    referral_code: str
    levels_created: List[str]


class TeamStats(BaseModel):
    total_team: int = 0
    level_a: int = 0
    level_b: int = 0
    level_c: int = 0
    level_d: int = 0
    vip_count: int = 0
    trial_count: int = 0


class TeamMember(BaseModel):
    id: str
    level: str
    created_at: Optional[str] = None
    user_id: str
    full_name: Optional[str] = None
    username: Optional[str] = None
    phone_number: Optional[str] = None
    membership_type: Optional[str] = None
    membership_level: Optional[str] = None
    total_earnings: float = 0
    is_trial_active: bool = False
    trial_end_date: Optional[str] = None


class TeamData(BaseModel):
    team_members: List[TeamMember]
    team_stats: TeamStats
    pagination: Pagination


class EarningsSummary(BaseModel):
    total_paid: float = 0
    total_pending: float = 0
    video_commissions: float = 0
    deposit_commissions: float = 0
    level_a: int = 0
    level_b: int = 0
    level_c: int = 0
    level_d: int = 0


class EarningsData(BaseModel):
    commissions: List[Dict[str, Any]]
    earnings_summary: EarningsSummary
    pagination: Pagination


class ReferralEarnings(BaseModel):
    total_earnings: float = 0
    paid_earnings: float = 0
    pending_earnings: float = 0


class MyReferralData(BaseModel):
    referral_code: Optional[str] = None
    referral_link: Optional[str] = None
    stats: TeamStats
    earnings: ReferralEarnings
