"""
budget_service.py - Budgets and per-user budget settings
A user may own several budgets; a default one is created on first use.
The month start day lives on the user's profile and drives period math.
"""

import logging
from datetime import datetime, timezone

from config import DEFAULT_BUDGET_NAME, DEFAULT_CURRENCY, DEFAULT_MONTH_START_DAY
from errors import NotFoundError, ValidationError
from record_store import RecordStore
from services.period_service import BudgetPeriod, budget_period, period_for_month, validate_month_start_day

logger = logging.getLogger(__name__)


class BudgetService:
    @staticmethod
    async def list_budgets(store: RecordStore, user_id: str) -> list[dict]:
        return await store.select("budgets", {"user_id": user_id}, order_by="created_at")

    @staticmethod
    async def get_budget(store: RecordStore, user_id: str, budget_id: str) -> dict:
        """A budget owned by `user_id`. Someone else's budget is reported as not found."""
        budget = await store.get("budgets", budget_id)
        if budget["user_id"] != user_id:
            raise NotFoundError("budgets", budget_id)
        return budget

    @staticmethod
    async def owned_budget_id(store: RecordStore, user_id: str, *, budget_id: str | None = None,
                              account_id: str | None = None, group_id: str | None = None,
                              category_id: str | None = None, transaction_id: str | None = None,
                              tag_id: str | None = None) -> str:
        """Walk a record up to its budget and check the user owns it. Returns the budget id."""
        if transaction_id:
            account_id = (await store.get("transactions", transaction_id))["account_id"]
        if category_id:
            group_id = (await store.get("categories", category_id))["category_group_id"]
        if account_id:
            budget_id = (await store.get("accounts", account_id))["budget_id"]
        elif group_id:
            budget_id = (await store.get("category_groups", group_id))["budget_id"]
        elif tag_id:
            budget_id = (await store.get("tags", tag_id))["budget_id"]
        if not budget_id:
            raise ValidationError("budget_id is required")
        await BudgetService.get_budget(store, user_id, budget_id)
        return budget_id

    @staticmethod
    async def create_budget(store: RecordStore, user_id: str, name: str, currency_code: str | None = None) -> dict:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Budget name is required")
        if currency_code is None:
            settings = await BudgetService.get_settings(store, user_id)
            currency_code = settings["currency_code"]
        budget = await store.insert("budgets", {
            "user_id": user_id,
            "name": name,
            "currency_code": currency_code.upper(),
        })
        logger.info(f"Created budget {budget['id']} for user {user_id}")
        return budget

    @staticmethod
    async def update_budget(store: RecordStore, user_id: str, budget_id: str, data: dict) -> dict:
        await BudgetService.get_budget(store, user_id, budget_id)
        allowed = {k: v for k, v in data.items() if k in ("name", "currency_code")}
        if not allowed:
            raise ValidationError("Nothing to update")
        return await store.update("budgets", budget_id, allowed)

    @staticmethod
    async def ensure_default_budget(store: RecordStore, user_id: str) -> dict:
        budgets = await BudgetService.list_budgets(store, user_id)
        if budgets:
            return budgets[0]
        return await BudgetService.create_budget(store, user_id, DEFAULT_BUDGET_NAME)

    # ------------------------------------------------------------------
    @staticmethod
    async def get_settings(store: RecordStore, user_id: str) -> dict:
        """Currency and month start day for a user, with defaults when no profile row exists."""
        rows = await store.select("profiles", {"id": user_id})
        profile = rows[0] if rows else {}
        return {
            "user_id": user_id,
            "currency_code": profile.get("currency_code") or DEFAULT_CURRENCY,
            "month_start_day": profile.get("month_start_day") or DEFAULT_MONTH_START_DAY,
        }

    @staticmethod
    async def update_settings(store: RecordStore, user_id: str, currency_code: str | None = None,
                              month_start_day: int | None = None) -> dict:
        data = {"id": user_id, "updated_at": datetime.now(timezone.utc).isoformat()}
        if currency_code is not None:
            if len(currency_code) != 3:
                raise ValidationError("currency_code must be a 3-letter ISO code")
            data["currency_code"] = currency_code.upper()
        if month_start_day is not None:
            data["month_start_day"] = validate_month_start_day(month_start_day)
        await store.upsert("profiles", data, on_conflict=("id",))
        return await BudgetService.get_settings(store, user_id)

    @staticmethod
    async def month_start_day(store: RecordStore, budget_id: str) -> int:
        budget = await store.get("budgets", budget_id)
        settings = await BudgetService.get_settings(store, budget["user_id"])
        return settings["month_start_day"]

    @staticmethod
    async def resolve_period(store: RecordStore, budget_id: str, month: str | None = None,
                             reference_date=None) -> BudgetPeriod:
        """The period named by a month key, else the one containing reference_date."""
        start_day = await BudgetService.month_start_day(store, budget_id)
        if month:
            return period_for_month(month, start_day)
        if reference_date is None:
            raise ValidationError("Either month or reference_date is required")
        return budget_period(reference_date, start_day)
