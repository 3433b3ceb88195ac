from fastapi import APIRouter, Depends, Query
from rewards.core.dependencies import get_app_user
from rewards.database.supabase_client import get_service_supabase
from rewards.modules.referrals.schemas import ReferralLinkRequest
from rewards.modules.referrals.service import ReferralService
from supabase import Client
from typing import Any, Dict, Optional

router = APIRouter(prefix="/referrals", tags=["referrals"])


def get_referral_service(supabase: Client = Depends(get_service_supabase)) -> ReferralService:
    return ReferralService(supabase)


@router.post("", status_code=201)
def link_referrer(
    request: ReferralLinkRequest,
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: ReferralService = Depends(get_referral_service)
):
    """Attach the caller to a referrer by code, building the A to D chain"""
    data = service.link(app_user["id"], request.referral_code)
    return {"success": True, "message": "Referral relationship created successfully", "data": data.model_dump()}


@router.get("/team")
def team(
    level: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: ReferralService = Depends(get_referral_service)
):
    """Referred members, newest first, with team statistics"""
    data = service.get_team(app_user["id"], level, page, limit)
    return {"success": True, "data": data.model_dump()}


@router.get("/earnings")
def earnings(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: ReferralService = Depends(get_referral_service)
):
    """Commission history with a paid/pending summary"""
    data = service.get_earnings(app_user["id"], status, page, limit)
    return {"success": True, "data": data.model_dump()}


@router.get("/my-referral")
def my_referral(
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: ReferralService = Depends(get_referral_service)
):
    """The caller's referral code, share link and team totals"""
    data = service.get_my_referral(app_user["id"])
    return {"success": True, "data": data.model_dump()}
