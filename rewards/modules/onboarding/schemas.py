from pydantic import BaseModel, Field
from typing import Optional, Dict, Any


class IdentityEvent(BaseModel):
    identity_id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_auth_record(cls, record: Dict[str, Any]) -> "IdentityEvent":
        """Build from an auth.users row as delivered by a database webhook"""
        return cls(
            identity_id=str(record["id"]),
            email=record.get("email"),
            phone=record.get("phone") or None,
            metadata=record.get("raw_user_meta_data") or record.get("user_metadata") or {},
        )

    @classmethod
    def from_auth_user(cls, user: Any) -> "IdentityEvent":
        """Build from a gotrue User object (auth.admin.list_users / sign_up)"""
        return cls(
            identity_id=str(user.id),
            email=getattr(user, "email", None),
            phone=getattr(user, "phone", None) or None,
            metadata=getattr(user, "user_metadata", None) or {},
        )


class OnboardingResult(BaseModel):
    user_id: str
    auth_user_id: str
    username: str
    referral_code: str
    tier_code: str
    created: bool = True
    repaired: bool = False
    attempts: int = 1


class AuthWebhookPayload(BaseModel):
    type: str
    table: str
    schema_name: str = Field(default="auth", alias="schema")
    record: Optional[Dict[str, Any]] = None
    old_record: Optional[Dict[str, Any]] = None

    model_config = {"populate_by_name": True}
