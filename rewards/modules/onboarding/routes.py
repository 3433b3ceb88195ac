import secrets
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from rewards.config.settings import settings
from rewards.core.dependencies import get_onboarding_service
from rewards.modules.onboarding.schemas import AuthWebhookPayload, OnboardingResult, IdentityEvent
from rewards.modules.onboarding.service import OnboardingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


def verify_webhook_secret(x_webhook_secret: Optional[str] = Header(default=None)) -> None:
    """Shared-secret check for the auth.users database webhook"""
    expected = settings.onboarding_webhook_secret
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Onboarding webhook is not configured"
        )
    if not x_webhook_secret or not secrets.compare_digest(x_webhook_secret, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")


@router.post("/events")
def handle_auth_event(
    payload: AuthWebhookPayload,
    _: None = Depends(verify_webhook_secret),
    service: OnboardingService = Depends(get_onboarding_service)
):
    """Onboard a newly inserted auth.users row"""
    if payload.type.upper() != "INSERT" or payload.table != "users" or not payload.record:
        logger.debug(f"Ignoring webhook event {payload.type} on {payload.schema_name}.{payload.table}")
        return {"success": True, "skipped": True}

    event = IdentityEvent.from_auth_record(payload.record)
    result: OnboardingResult = service.onboard(event)
    return {"success": True, "skipped": False, "data": result.model_dump()}
