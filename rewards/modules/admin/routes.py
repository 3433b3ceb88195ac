from fastapi import APIRouter, Depends, HTTPException, Query
from rewards.core.dependencies import require_admin, get_tier_service
from rewards.database.supabase_client import get_service_supabase
from rewards.modules.admin.schemas import ReviewRequest
from rewards.modules.admin.service import AdminService
from rewards.modules.tiers.schemas import TierChangeRequest
from rewards.modules.tiers.service import TierService
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/admin", tags=["admin"])


def get_admin_service(supabase: Client = Depends(get_service_supabase)) -> AdminService:
    return AdminService(supabase)


@router.get("/deposits")
def list_deposits(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """List deposits, newest first"""
    data = service.list_deposits(status, page, limit)
    return {"success": True, "data": data.model_dump()}


@router.put("/deposits/{deposit_id}/approve")
def approve_deposit(
    deposit_id: str,
    review: Optional[ReviewRequest] = None,
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Approve a pending deposit and credit the personal wallet"""
    data = service.approve_deposit(deposit_id, user_data["id"], review.admin_notes if review else None)
    return {"success": True, "message": "Deposit approved", "data": data}


@router.put("/deposits/{deposit_id}/reject")
def reject_deposit(
    deposit_id: str,
    review: Optional[ReviewRequest] = None,
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Reject a pending deposit"""
    data = service.reject_deposit(deposit_id, user_data["id"], review.admin_notes if review else None)
    return {"success": True, "message": "Deposit rejected", "data": data}


@router.get("/withdrawals")
def list_withdrawals(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """List withdrawals, newest first"""
    data = service.list_withdrawals(status, page, limit)
    return {"success": True, "data": data.model_dump()}


@router.put("/withdrawals/{withdrawal_id}/approve")
def approve_withdrawal(
    withdrawal_id: str,
    review: Optional[ReviewRequest] = None,
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Approve a pending withdrawal and debit the income wallet"""
    data = service.approve_withdrawal(withdrawal_id, user_data["id"], review.admin_notes if review else None)
    return {"success": True, "message": "Withdrawal approved", "data": data}


@router.put("/withdrawals/{withdrawal_id}/reject")
def reject_withdrawal(
    withdrawal_id: str,
    review: Optional[ReviewRequest] = None,
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Reject a pending withdrawal"""
    data = service.reject_withdrawal(withdrawal_id, user_data["id"], review.admin_notes if review else None)
    return {"success": True, "message": "Withdrawal rejected", "data": data}


@router.get("/users/search")
def search_user(
    phone: Optional[str] = None,
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Find a user by phone number with referral team counts"""
    if not phone:
        raise HTTPException(status_code=400, detail="phone is required")
    data = service.search_user_by_phone(phone)
    return {"success": True, "data": data.model_dump()}


@router.get("/users/{user_id}/activity")
def user_activity(
    user_id: str,
    limit: int = Query(10, ge=1, le=100),
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Recent deposits, withdrawals, ledger rows, task completions and balances"""
    data = service.get_user_activity(user_id, limit)
    return {"success": True, "data": data.model_dump()}


@router.put("/users/{user_id}/tier")
def change_user_tier(
    user_id: str,
    request: TierChangeRequest,
    user_data: Dict = Depends(require_admin),
    service: TierService = Depends(get_tier_service)
):
    """Move a user to another catalog tier, keeping the profile copy in sync"""
    data = service.change_tier(user_id, request.tier_code)
    return {"success": True, "data": data.model_dump()}
