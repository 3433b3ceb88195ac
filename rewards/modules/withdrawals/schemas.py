from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from rewards.core.pagination import Pagination


class WithdrawalCreate(BaseModel):
    amount: float = Field(..., gt=0)
    account_number: str = Field(..., min_length=1)
    account_name: str = Field(..., min_length=1)
    payment_method_id: Optional[str] = None


class UserWithdrawalListData(BaseModel):
    withdrawals: List[Dict[str, Any]]
    pagination: Pagination
