from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


class ReconciliationPlan(BaseModel):
    missing_users: List[Dict[str, Any]] = Field(default_factory=list)  # identities with no users row
    missing_profiles: List[Dict[str, Any]] = Field(default_factory=list)  # users rows with no profile
    missing_referrals: List[Dict[str, Any]] = Field(default_factory=list)  # {"user_id", "referral_code"}

    @property
    def is_empty(self) -> bool:
        return not self.missing_users and not self.missing_profiles and not self.missing_referrals


class ReconciliationFailure(BaseModel):
    identity_id: Optional[str] = None
    user_id: Optional[str] = None
    category: str
    message: str


class ReconciliationReport(BaseModel):
    dry_run: bool
    identities_scanned: int = 0
    users_scanned: int = 0
    profiles_scanned: int = 0
    missing_users: int = 0
    missing_profiles: int = 0
    missing_referrals: int = 0
    onboarded: int = 0
    profiles_created: int = 0
    referrals_linked: int = 0
    failures: List[ReconciliationFailure] = Field(default_factory=list)

    @property
    def writes(self) -> int:
        return self.onboarded + self.profiles_created + self.referrals_linked
