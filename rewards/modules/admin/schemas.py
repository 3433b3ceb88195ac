from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from rewards.core.pagination import Pagination


class ReviewRequest(BaseModel):
    admin_notes: Optional[str] = None


class DepositListData(BaseModel):
    deposits: List[Dict[str, Any]]
    pagination: Pagination


class WithdrawalListData(BaseModel):
    withdrawals: List[Dict[str, Any]]
    pagination: Pagination


class TeamStats(BaseModel):
    total_team: int = 0
    level_a: int = 0
    level_b: int = 0
    level_c: int = 0
    level_d: int = 0


class UserSearchData(BaseModel):
    user: Dict[str, Any]
    team: TeamStats


class Balances(BaseModel):
    personal_wallet_balance: float = 0
    income_wallet_balance: float = 0
    total_earnings: float = 0
    total_invested: float = 0


class UserActivityData(BaseModel):
    deposits: List[Dict[str, Any]] = Field(default_factory=list)
    withdrawals: List[Dict[str, Any]] = Field(default_factory=list)
    financial: List[Dict[str, Any]] = Field(default_factory=list)
    tasks: List[Dict[str, Any]] = Field(default_factory=list)
    balances: Balances
