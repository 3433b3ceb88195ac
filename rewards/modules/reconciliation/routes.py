from fastapi import APIRouter, Depends
from rewards.core.dependencies import require_admin, get_onboarding_service
from rewards.database.supabase_client import get_service_supabase
from rewards.modules.onboarding.service import OnboardingService
from rewards.modules.reconciliation.service import ReconciliationService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/admin", tags=["admin"])


def get_reconciliation_service(
    supabase: Client = Depends(get_service_supabase),
    onboarding: OnboardingService = Depends(get_onboarding_service)
) -> ReconciliationService:
    return ReconciliationService(supabase, onboarding)


@router.post("/reconcile")
def reconcile(
    dry_run: bool = True,
    user_data: Dict = Depends(require_admin),
    service: ReconciliationService = Depends(get_reconciliation_service)
):
    """Find identities without application records and (unless dry_run) onboard them"""
    report = service.run(dry_run=dry_run)
    return {"success": True, "data": {**report.model_dump(), "writes": report.writes}}
