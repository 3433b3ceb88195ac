from fastapi import APIRouter, Depends
from rewards.core.dependencies import get_app_user, get_tier_service as get_service_tier_service
from rewards.database.supabase_client import get_supabase
from rewards.modules.tiers.schemas import TierChangeRequest
from rewards.modules.tiers.service import TierService
from supabase import Client
from typing import Any, Dict

router = APIRouter(prefix="/vip", tags=["vip"])


def get_tier_service(supabase: Client = Depends(get_supabase)) -> TierService:
    return TierService(supabase)


@router.get("/levels")
def list_levels(service: TierService = Depends(get_tier_service)):
    """List active VIP levels, lowest rank first"""
    tiers = service.list_tiers()
    return {"success": True, "data": {"vip_levels": [t.model_dump() for t in tiers]}}


@router.get("/current")
def current_level(
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: TierService = Depends(get_service_tier_service)
):
    """The caller's tier, membership status and the tiers above it"""
    data = service.get_current(app_user["id"])
    return {"success": True, "data": data.model_dump()}


@router.post("/activate")
def activate_level(
    request: TierChangeRequest,
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: TierService = Depends(get_service_tier_service)
):
    """Buy a higher VIP level with the personal wallet"""
    data = service.activate_tier(app_user["id"], request.tier_code)
    return {
        "success": True,
        "message": f"VIP level {data.tier_code} activated",
        "data": data.model_dump(),
    }


@router.post("/upgrade")
def upgrade_level(
    request: TierChangeRequest,
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: TierService = Depends(get_service_tier_service)
):
    """Move up to a VIP level already covered by total investment"""
    data = service.upgrade_by_investment(app_user["id"], request.tier_code)
    return {
        "success": True,
        "message": f"Upgraded to {data.tier_code}",
        "data": data.model_dump(),
    }
