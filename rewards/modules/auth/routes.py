from fastapi import APIRouter, Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from rewards.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse, VerifiedUser
)
from rewards.modules.auth.service import AuthService
from rewards.modules.onboarding.schemas import IdentityEvent
from rewards.modules.onboarding.service import OnboardingService
from rewards.core.dependencies import (
    get_auth_service, get_onboarding_service, get_current_user_id, get_app_user, is_admin
)
from typing import Any, Dict

router = APIRouter(prefix="/auth", tags=["auth"])

# Security scheme for JWT Bearer token
security = HTTPBearer()


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
    onboarding: OnboardingService = Depends(get_onboarding_service)
):
    """Register an identity and onboard it. Onboarding failures are returned to the caller."""
    auth_user = service.register(register_data)
    result = onboarding.onboard(IdentityEvent.from_auth_user(auth_user))
    return RegisterResponse(
        user_id=result.user_id,
        auth_user_id=result.auth_user_id,
        email=auth_user.email or register_data.email,
        username=result.username,
        referral_code=result.referral_code,
        tier_code=result.tier_code,
        message="User registered successfully"
    )


@router.post("/login", response_model=TokenResponse)
def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/verify")
def verify(
    current_user: Dict = Depends(get_current_user_id),
    app_user: Dict[str, Any] = Depends(get_app_user)
):
    """Validate the bearer token and return the application user record"""
    user = VerifiedUser(**{k: app_user.get(k) for k in VerifiedUser.model_fields})
    return {
        "success": True,
        "data": {
            "user": user.model_dump(),
            "is_admin": is_admin(current_user),
        }
    }
