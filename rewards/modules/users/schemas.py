from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from rewards.core.pagination import Pagination

PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    phone_number: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    profile_avatar: Optional[str] = None


class WalletResponse(BaseModel):
    personal_wallet: float = 0
    income_wallet: float = 0
    total_earnings: float = 0
    total_invested: float = 0
    vip_level: Optional[str] = None


class FinancialRecordListData(BaseModel):
    records: List[Dict[str, Any]]
    pagination: Pagination
