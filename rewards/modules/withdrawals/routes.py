from fastapi import APIRouter, Depends, Query
from rewards.core.dependencies import get_app_user
from rewards.database.supabase_client import get_service_supabase
from rewards.modules.withdrawals.schemas import WithdrawalCreate
from rewards.modules.withdrawals.service import WithdrawalService
from supabase import Client
from typing import Any, Dict, Optional

router = APIRouter(prefix="/withdrawals", tags=["withdrawals"])


def get_withdrawal_service(supabase: Client = Depends(get_service_supabase)) -> WithdrawalService:
    return WithdrawalService(supabase)


@router.post("", status_code=201)
def request_withdrawal(
    withdrawal: WithdrawalCreate,
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: WithdrawalService = Depends(get_withdrawal_service)
):
    """Request a payout from the income wallet"""
    row = service.submit(app_user["id"], withdrawal)
    return {
        "success": True,
        "message": "Withdrawal request submitted successfully. Waiting for admin approval.",
        "data": {"withdrawal": row},
    }


@router.get("")
def list_my_withdrawals(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: WithdrawalService = Depends(get_withdrawal_service)
):
    """The caller's withdrawal requests, newest first"""
    data = service.list_for_user(app_user["id"], status, page, limit)
    return {"success": True, "data": data.model_dump()}
