"""
account_service.py - Accounts
A new account starts at zero; a non-zero starting balance is posted as an
uncategorized "Starting Balance" transaction so the balance still equals
the sum of the account's transactions.
"""

import logging
from datetime import datetime, timezone

from errors import ValidationError
from money import ZERO, to_decimal
from models.account import ACCOUNT_TYPES
from record_store import RecordStore
from services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

STARTING_BALANCE_PAYEE = "Starting Balance"

# Editable without touching the ledger
EDITABLE_FIELDS = ("name", "account_type", "is_on_budget", "closed", "note", "sort_order")


class AccountService:
    @staticmethod
    async def list_accounts(store: RecordStore, budget_id: str, include_closed: bool = True) -> list[dict]:
        accounts = await store.select("accounts", {"budget_id": budget_id}, order_by="sort_order")
        if include_closed:
            return accounts
        return [a for a in accounts if not a.get("closed")]

    @staticmethod
    async def create_account(store: RecordStore, budget_id: str, name: str, account_type: str,
                             starting_balance=0, is_on_budget: bool = True, on_date=None,
                             note: str | None = None) -> dict:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name is required")
        if account_type not in ACCOUNT_TYPES:
            raise ValidationError(f"account_type must be one of {', '.join(ACCOUNT_TYPES)}")
        try:
            opening = to_decimal(starting_balance)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        await store.get("budgets", budget_id)
        existing = await store.select("accounts", {"budget_id": budget_id})
        account = await store.insert("accounts", {
            "budget_id": budget_id,
            "name": name,
            "account_type": account_type,
            "balance": ZERO,
            "is_on_budget": is_on_budget,
            "closed": False,
            "note": note,
            "sort_order": len(existing),
        })
        logger.info(f"Created account {account['id']} ({account_type}) in budget {budget_id}")

        if opening != ZERO:
            tx = await TransactionService.create_transaction(store, {
                "account_id": account["id"],
                "date": on_date or datetime.now(timezone.utc).date(),
                "amount": opening,
                "payee_name": STARTING_BALANCE_PAYEE,
                "cleared": True,
            })
            account["balance"] = tx["balance"]
        return account

    @staticmethod
    async def update_account(store: RecordStore, account_id: str, data: dict) -> dict:
        """Rename, close/reopen, toggle on-budget. Balance is not editable here."""
        if "balance" in data:
            raise ValidationError("Balance changes must be recorded as transactions")
        changes = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
        if not changes:
            raise ValidationError("Nothing to update")
        if "account_type" in changes and changes["account_type"] not in ACCOUNT_TYPES:
            raise ValidationError(f"account_type must be one of {', '.join(ACCOUNT_TYPES)}")
        if "name" in changes:
            changes["name"] = (changes["name"] or "").strip()
            if not changes["name"]:
                raise ValidationError("Account name is required")
        return await store.update("accounts", account_id, changes)

    @staticmethod
    async def delete_account(store: RecordStore, account_id: str) -> None:
        """Only an account with no transactions (and no transfer legs pointing at it) can be deleted."""
        await store.get("accounts", account_id)
        if await store.select("transactions", {"account_id": account_id}) or \
                await store.select("transactions", {"transfer_account_id": account_id}):
            raise ValidationError("Account has transactions; close it instead")
        await store.delete("accounts", account_id)
        logger.info(f"Deleted account {account_id}")
