from fastapi import APIRouter, Depends, Query
from rewards.core.dependencies import get_app_user
from rewards.database.supabase_client import get_service_supabase
from rewards.modules.users.schemas import ProfileUpdate
from rewards.modules.users.service import UserService
from supabase import Client
from typing import Any, Dict, Optional

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(supabase: Client = Depends(get_service_supabase)) -> UserService:
    return UserService(supabase)


@router.get("/profile")
def get_profile(
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: UserService = Depends(get_user_service)
):
    return {"success": True, "data": {"user": service.get_profile(app_user["id"])}}


@router.put("/profile")
def update_profile(
    update: ProfileUpdate,
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: UserService = Depends(get_user_service)
):
    """Change name, phone number or avatar"""
    user = service.update_profile(app_user["id"], update)
    return {"success": True, "message": "Profile updated successfully", "data": {"user": user}}


@router.get("/wallet")
def get_wallet(
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: UserService = Depends(get_user_service)
):
    return {"success": True, "data": service.get_wallet(app_user["id"]).model_dump()}


@router.get("/financial-records")
def financial_records(
    type: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    app_user: Dict[str, Any] = Depends(get_app_user),
    service: UserService = Depends(get_user_service)
):
    """Ledger rows for the caller, newest first"""
    data = service.list_financial_records(app_user["id"], type, page, limit)
    return {"success": True, "data": data.model_dump()}
