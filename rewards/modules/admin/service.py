from supabase import Client
from rewards.core.pagination import page_bounds, paginate
from rewards.core.ledger import InsufficientBalance, apply_wallet_change, get_wallet
from rewards.modules.admin.schemas import (
    Balances, DepositListData, TeamStats, UserActivityData,
    UserSearchData, WithdrawalListData
)
from rewards.modules.tiers.service import TierService
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

REVIEW_STATUSES = ("pending", "approved", "rejected")
USER_SEARCH_COLUMNS = "id, auth_user_id, full_name, email, username, phone_number, referral_code, vip_level, created_at"


class AdminService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    # Listing

    def _list_requests(self, table: str, status: Optional[str], page: int, limit: int):
        if status is not None and status not in REVIEW_STATUSES:
            raise HTTPException(status_code=400, detail=f"status must be one of {', '.join(REVIEW_STATUSES)}")
        start, end = page_bounds(page, limit)
        query = self.supabase.table(table)\
            .select("*, users(full_name), payment_methods(name)", count="exact")
        if status:
            query = query.eq("status", status)
        result = query.order("created_at", desc=True)\
            .range(start, end)\
            .execute()

        rows = []
        for row in result.data or []:
            item = dict(row)
            user = item.pop("users", None) or {}
            method = item.pop("payment_methods", None) or {}
            item["user_name"] = user.get("full_name")
            item["payment_method_name"] = method.get("name")
            rows.append(item)

        total = result.count if result.count is not None else len(rows)
        return rows, paginate(page, limit, total)

    def list_deposits(self, status: Optional[str], page: int, limit: int) -> DepositListData:
        rows, pagination = self._list_requests("deposits", status, page, limit)
        return DepositListData(deposits=rows, pagination=pagination)

    def list_withdrawals(self, status: Optional[str], page: int, limit: int) -> WithdrawalListData:
        rows, pagination = self._list_requests("withdrawals", status, page, limit)
        return WithdrawalListData(withdrawals=rows, pagination=pagination)

    # Review

    def _get_pending(self, table: str, request_id: str, label: str) -> Dict[str, Any]:
        result = self.supabase.table(table)\
            .select("*")\
            .eq("id", request_id)\
            .eq("status", "pending")\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail=f"{label} not found or already processed")
        return result.data[0]

    def _claim(self, table: str, request_id: str, new_status: str, admin_id: str,
               admin_notes: Optional[str], label: str) -> None:
        """Move pending -> new_status. The status filter makes double review a 404."""
        now = datetime.now(timezone.utc).isoformat()
        result = self.supabase.table(table)\
            .update({
                "status": new_status,
                "approved_by": admin_id,
                "approved_at": now,
                "admin_notes": admin_notes,
                "updated_at": now,
            })\
            .eq("id", request_id)\
            .eq("status", "pending")\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail=f"{label} not found or already processed")

    def _release(self, table: str, request_id: str) -> None:
        try:
            self.supabase.table(table)\
                .update({"status": "pending", "approved_by": None, "approved_at": None})\
                .eq("id", request_id)\
                .execute()
        except Exception as e:
            logger.critical(f"Could not return {table} {request_id} to pending: {e}")

    def approve_deposit(self, deposit_id: str, admin_id: str, admin_notes: Optional[str]) -> Dict[str, Any]:
        """
        Credit the personal wallet and total_invested, then move the user up
        to the highest tier the new total_invested pays for.
        """
        deposit = self._get_pending("deposits", deposit_id, "Deposit")
        amount = float(deposit["amount"])
        self._claim("deposits", deposit_id, "approved", admin_id, admin_notes, "Deposit")
        try:
            balances = apply_wallet_change(
                self.supabase, deposit["user_id"], "personal_wallet_balance", amount,
                record_type="deposit", description="Deposit approved",
                reference_id=deposit_id, reference_type="deposit",
                add_to_total_invested=True,
            )
        except HTTPException:
            self._release("deposits", deposit_id)
            raise
        except Exception as e:
            logger.error(f"Crediting deposit {deposit_id} failed; returning it to pending: {e}")
            self._release("deposits", deposit_id)
            raise HTTPException(status_code=500, detail="Failed to approve deposit")

        vip_upgrade = None
        try:
            change = TierService(self.supabase).upgrade_for_investment(
                deposit["user_id"], balances["total_invested"], reference_id=deposit_id
            )
        except Exception as e:
            # The deposit stands; the tier can still be raised through /vip/upgrade
            logger.error(f"Automatic tier upgrade after deposit {deposit_id} failed: {e}")
            change = None
        if change is not None:
            vip_upgrade = {
                "new_level": change.tier_code,
                "message": f"Upgraded to {change.tier_code} based on total investment",
            }

        logger.info(f"Deposit {deposit_id} approved by {admin_id}")
        return {
            "deposit_id": deposit_id,
            "amount": amount,
            "new_balance": balances["personal_wallet_balance"],
            "total_invested": balances["total_invested"],
            "vip_upgrade": vip_upgrade,
        }

    def reject_deposit(self, deposit_id: str, admin_id: str, admin_notes: Optional[str]) -> Dict[str, Any]:
        self._claim("deposits", deposit_id, "rejected", admin_id, admin_notes, "Deposit")
        logger.info(f"Deposit {deposit_id} rejected by {admin_id}")
        return {"deposit_id": deposit_id}

    def approve_withdrawal(self, withdrawal_id: str, admin_id: str, admin_notes: Optional[str]) -> Dict[str, Any]:
        withdrawal = self._get_pending("withdrawals", withdrawal_id, "Withdrawal")
        amount = float(withdrawal["amount"])
        wallet = get_wallet(self.supabase, withdrawal["user_id"])
        available = float(wallet.get("income_wallet_balance") or 0)
        if available < amount:
            raise HTTPException(
                status_code=400,
                detail=f"Insufficient balance. Required: {amount}, Available: {available}"
            )

        self._claim("withdrawals", withdrawal_id, "approved", admin_id, admin_notes, "Withdrawal")
        try:
            balances = apply_wallet_change(
                self.supabase, withdrawal["user_id"], "income_wallet_balance", -amount,
                record_type="withdrawal", description="Withdrawal approved",
                reference_id=withdrawal_id, reference_type="withdrawal",
            )
        except InsufficientBalance as e:
            self._release("withdrawals", withdrawal_id)
            raise HTTPException(status_code=400, detail=str(e))
        except HTTPException:
            self._release("withdrawals", withdrawal_id)
            raise
        except Exception as e:
            logger.error(f"Debiting withdrawal {withdrawal_id} failed; returning it to pending: {e}")
            self._release("withdrawals", withdrawal_id)
            raise HTTPException(status_code=500, detail="Failed to approve withdrawal")
        logger.info(f"Withdrawal {withdrawal_id} approved by {admin_id}")
        return {"withdrawal_id": withdrawal_id, "new_balance": balances["income_wallet_balance"]}

    def reject_withdrawal(self, withdrawal_id: str, admin_id: str, admin_notes: Optional[str]) -> Dict[str, Any]:
        self._claim("withdrawals", withdrawal_id, "rejected", admin_id, admin_notes, "Withdrawal")
        logger.info(f"Withdrawal {withdrawal_id} rejected by {admin_id}")
        return {"withdrawal_id": withdrawal_id}

    # Users

    def search_user_by_phone(self, phone: str) -> UserSearchData:
        result = self.supabase.table("users")\
            .select(USER_SEARCH_COLUMNS)\
            .eq("phone_number", phone)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")
        user = result.data[0]

        team_result = self.supabase.table("referrals")\
            .select("level")\
            .eq("parent_user_id", user["id"])\
            .execute()
        team = TeamStats()
        for row in team_result.data or []:
            team.total_team += 1
            field = f"level_{str(row.get('level', '')).lower()}"
            if hasattr(team, field):
                setattr(team, field, getattr(team, field) + 1)
        return UserSearchData(user=user, team=team)

    def _recent(self, table: str, user_id: str, limit: int) -> List[Dict[str, Any]]:
        result = self.supabase.table(table)\
            .select("*")\
            .eq("user_id", user_id)\
            .order("created_at", desc=True)\
            .limit(limit)\
            .execute()
        return result.data or []

    def get_user_activity(self, user_id: str, limit: int = 10) -> UserActivityData:
        wallet = get_wallet(self.supabase, user_id)
        return UserActivityData(
            deposits=self._recent("deposits", user_id, limit),
            withdrawals=self._recent("withdrawals", user_id, limit),
            financial=self._recent("financial_records", user_id, limit),
            tasks=self._recent("task_completions", user_id, limit),
            balances=Balances(
                personal_wallet_balance=float(wallet.get("personal_wallet_balance") or 0),
                income_wallet_balance=float(wallet.get("income_wallet_balance") or 0),
                total_earnings=float(wallet.get("total_earnings") or 0),
                total_invested=float(wallet.get("total_invested") or 0),
            ),
        )
