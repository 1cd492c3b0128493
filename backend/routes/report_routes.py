import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from auth import get_current_user
from record_store import RecordStore, get_store
from services.budget_service import BudgetService
from services.insight_service import InsightService
from services.report_service import ReportService

router = APIRouter(prefix="/api/v1/reports", tags=["Reports"])


@router.get("/{budget_id}/spending")
async def spending(budget_id: str, start: datetime.date, end: datetime.date,
                   user_id: str = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    await BudgetService.get_budget(store, user_id, budget_id)
    return await ReportService.spending_report(store, budget_id, start, end)


@router.get("/{budget_id}/net-worth")
async def net_worth(budget_id: str, user_id: str = Depends(get_current_user),
                    store: RecordStore = Depends(get_store)):
    await BudgetService.get_budget(store, user_id, budget_id)
    return await ReportService.net_worth(store, budget_id)


@router.get("/{budget_id}/insights")
async def insights(budget_id: str, month: Optional[str] = None, on: Optional[datetime.date] = None,
                   user_id: str = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """Up to five warnings and tips for the period containing `on` (default today)."""
    await BudgetService.get_budget(store, user_id, budget_id)
    today = on or datetime.date.today()
    period = await BudgetService.resolve_period(store, budget_id, month, today)
    return await InsightService.insights(store, budget_id, period, today)
