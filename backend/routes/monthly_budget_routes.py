import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import get_current_user
from record_store import RecordStore, get_store
from services.budget_service import BudgetService
from services.monthly_budget_service import MonthlyBudgetService

router = APIRouter(prefix="/api/v1/monthly-budgets", tags=["Monthly Budgets"])


class BudgetedUpdate(BaseModel):
    budgeted: Decimal


async def _period(store: RecordStore, budget_id: str, month: Optional[str], on: Optional[datetime.date]):
    return await BudgetService.resolve_period(store, budget_id, month, on or datetime.date.today())


@router.get("/{budget_id}")
async def budget_month(budget_id: str, month: Optional[str] = None, on: Optional[datetime.date] = None,
                       user_id: str = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """Every group and category for one period with live activity and ready to assign."""
    await BudgetService.get_budget(store, user_id, budget_id)
    period = await _period(store, budget_id, month, on)
    return await MonthlyBudgetService.budget_month(store, budget_id, period)


@router.get("/{budget_id}/ready-to-assign")
async def ready_to_assign(budget_id: str, month: Optional[str] = None, on: Optional[datetime.date] = None,
                          user_id: str = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    await BudgetService.get_budget(store, user_id, budget_id)
    period = await _period(store, budget_id, month, on)
    return {
        "period": period.to_dict(),
        "ready_to_assign": await MonthlyBudgetService.ready_to_assign(store, budget_id, period),
    }


@router.put("/categories/{category_id}/{month}")
async def set_budgeted(category_id: str, month: str, body: BudgetedUpdate,
                       user_id: str = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """Set the budgeted amount for a category in a month (YYYY-MM); returns the new ready to assign."""
    budget_id = await BudgetService.owned_budget_id(store, user_id, category_id=category_id)
    period = await _period(store, budget_id, month, None)
    rta = await MonthlyBudgetService.set_budgeted(store, category_id, period, body.budgeted)
    return {
        "category_id": category_id,
        "month": period.month_key,
        "budgeted": body.budgeted,
        "ready_to_assign": rta,
    }
