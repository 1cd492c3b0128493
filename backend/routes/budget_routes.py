from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import get_current_user
from record_store import RecordStore, get_store
from services.budget_service import BudgetService
from services.ledger_service import LedgerService

router = APIRouter(prefix="/api/v1/budgets", tags=["Budgets"])


class BudgetCreate(BaseModel):
    name: str
    currency_code: Optional[str] = None


class BudgetUpdate(BaseModel):
    name: Optional[str] = None
    currency_code: Optional[str] = None


class SettingsUpdate(BaseModel):
    currency_code: Optional[str] = None
    month_start_day: Optional[int] = None


@router.get("")
async def list_budgets(user_id: str = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """The user's budgets; a default one is created on first use."""
    budgets = await BudgetService.list_budgets(store, user_id)
    if not budgets:
        budgets = [await BudgetService.ensure_default_budget(store, user_id)]
    return budgets


@router.post("", status_code=201)
async def create_budget(body: BudgetCreate, user_id: str = Depends(get_current_user),
                        store: RecordStore = Depends(get_store)):
    return await BudgetService.create_budget(store, user_id, body.name, body.currency_code)


@router.get("/settings")
async def get_settings(user_id: str = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    return await BudgetService.get_settings(store, user_id)


@router.put("/settings")
async def update_settings(body: SettingsUpdate, user_id: str = Depends(get_current_user),
                          store: RecordStore = Depends(get_store)):
    return await BudgetService.update_settings(store, user_id, body.currency_code, body.month_start_day)


@router.get("/{budget_id}")
async def get_budget(budget_id: str, user_id: str = Depends(get_current_user),
                     store: RecordStore = Depends(get_store)):
    return await BudgetService.get_budget(store, user_id, budget_id)


@router.patch("/{budget_id}")
async def update_budget(budget_id: str, body: BudgetUpdate, user_id: str = Depends(get_current_user),
                        store: RecordStore = Depends(get_store)):
    return await BudgetService.update_budget(store, user_id, budget_id, body.model_dump(exclude_none=True))


@router.get("/{budget_id}/period")
async def current_period(budget_id: str, month: Optional[str] = None, on: Optional[date] = None,
                         user_id: str = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """The budget period for a month key, or the one containing `on` (default today)."""
    await BudgetService.get_budget(store, user_id, budget_id)
    period = await BudgetService.resolve_period(store, budget_id, month, on or date.today())
    return period.to_dict()


@router.post("/{budget_id}/reconcile")
async def reconcile(budget_id: str, user_id: str = Depends(get_current_user),
                    store: RecordStore = Depends(get_store)):
    """Recompute every account balance from its transactions and repair drift."""
    await BudgetService.get_budget(store, user_id, budget_id)
    results = await LedgerService.reconcile_budget(store, budget_id)
    return {"accounts": results, "repaired": sum(1 for r in results if r["repaired"])}
