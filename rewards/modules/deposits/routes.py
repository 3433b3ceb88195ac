from fastapi import APIRouter, Depends, Query
from rewards.core.dependencies import get_app_user
from rewards.database.supabase_client import get_service_supabase
from rewards.modules.deposits.schemas import DepositCreate
from rewards.modules.deposits.service import DepositService
from supabase import Client
from typing import Any, Dict, Optional

router = APIRouter(prefix="/deposits", tags=["deposits"])


def get_deposit_service(supabase: Client = Depends(get_service_supabase)) -> DepositService:
    return DepositService(supabase)


@router.post("", status_code=201)
def submit_deposit(
    deposit: DepositCreate,
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: DepositService = Depends(get_deposit_service)
):
    """Submit a deposit for admin review"""
    row = service.submit(app_user["id"], deposit)
    return {
        "success": True,
        "message": "Deposit request submitted successfully. Waiting for admin approval.",
        "data": {"deposit": row},
    }


@router.get("")
def list_my_deposits(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: DepositService = Depends(get_deposit_service)
):
    """The caller's deposits, newest first"""
    data = service.list_for_user(app_user["id"], status, page, limit)
    return {"success": True, "data": data.model_dump()}


@router.get("/payment-methods")
def payment_methods(
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: DepositService = Depends(get_deposit_service)
):
    """Active payment methods to deposit into"""
    methods = service.list_payment_methods()
    return {"success": True, "data": {"payment_methods": [m.model_dump() for m in methods]}}


@router.get("/{deposit_id}")
def get_my_deposit(
    deposit_id: str,
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: DepositService = Depends(get_deposit_service)
):
    """One of the caller's deposits"""
    return {"success": True, "data": {"deposit": service.get_for_user(app_user["id"], deposit_id)}}
