"""
Core dependencies for route protection and service wiring
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from rewards.database.supabase_client import get_supabase, get_service_supabase
from rewards.modules.auth.service import AuthService
from rewards.modules.onboarding.service import OnboardingService
from rewards.modules.tiers.service import TierService
from supabase import Client
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_tier_service(supabase: Client = Depends(get_service_supabase)) -> TierService:
    return TierService(supabase)


def get_onboarding_service(supabase: Client = Depends(get_service_supabase)) -> OnboardingService:
    """Onboarding writes users/user_profiles, so it always runs with the service-role client"""
    return OnboardingService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current identity info from JWT token"""
    token = credentials.credentials
    return auth_service.get_current_user(token)


def is_admin(user_data: dict) -> bool:
    """Admin flag lives in app_metadata, which only the service role can write"""
    app_metadata = user_data.get("app_metadata") or {}
    return app_metadata.get("role") == "admin"


def require_admin(user_data: dict = Depends(get_current_user_id)) -> dict:
    if not is_admin(user_data):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user_data


def get_app_user(
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_service_supabase)
) -> Dict[str, Any]:
    """Application users row for the token's identity. 404 marks an orphaned identity."""
    result = supabase.table("users")\
        .select("*")\
        .eq("auth_user_id", user_data["id"])\
        .limit(1)\
        .execute()
    if not result.data:
        logger.warning(f"Identity {user_data['id']} has no application user record")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User record not found; onboarding has not completed for this account"
        )
    user = result.data[0]
    if not user.get("is_active", True):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    return user
