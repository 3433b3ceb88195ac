from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from rewards.core.pagination import Pagination


class DepositCreate(BaseModel):
    payment_method_id: str
    amount: float = Field(..., gt=0)
    till_id: str = Field(..., min_length=1)
    sender_account_number: str = Field(..., min_length=1)
    payment_proof: Optional[str] = None


class PaymentMethod(BaseModel):
    id: str
    name: str
    account_number: Optional[str] = None
    is_active: bool = True


class UserDepositListData(BaseModel):
    deposits: List[Dict[str, Any]]
    pagination: Pagination
