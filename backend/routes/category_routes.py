from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import get_current_user
from errors import ValidationError
from record_store import RecordStore, get_store
from services.activity_service import ActivityService
from services.budget_service import BudgetService
from services.category_service import CategoryService

router = APIRouter(prefix="/api/v1/categories", tags=["Categories"])


class GroupCreate(BaseModel):
    budget_id: str
    name: str


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    is_hidden: Optional[bool] = None
    sort_order: Optional[int] = None


class CategoryCreate(BaseModel):
    category_group_id: str
    name: str
    target_type: Optional[str] = None
    target_amount: Optional[Decimal] = None
    target_date: Optional[date] = None
    note: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    category_group_id: Optional[str] = None
    target_type: Optional[str] = None
    target_amount: Optional[Decimal] = None
    target_date: Optional[date] = None
    is_hidden: Optional[bool] = None
    sort_order: Optional[int] = None
    note: Optional[str] = None


@router.get("")
async def list_categories(budget_id: str, user_id: str = Depends(get_current_user),
                          store: RecordStore = Depends(get_store)):
    await BudgetService.get_budget(store, user_id, budget_id)
    return await CategoryService.list_groups(store, budget_id)


@router.post("/groups", status_code=201)
async def create_group(body: GroupCreate, user_id: str = Depends(get_current_user),
                       store: RecordStore = Depends(get_store)):
    await BudgetService.get_budget(store, user_id, body.budget_id)
    return await CategoryService.create_group(store, body.budget_id, body.name)


@router.patch("/groups/{group_id}")
async def update_group(group_id: str, body: GroupUpdate, user_id: str = Depends(get_current_user),
                       store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, group_id=group_id)
    return await CategoryService.update_group(store, group_id, body.model_dump(exclude_none=True))


@router.delete("/groups/{group_id}")
async def delete_group(group_id: str, user_id: str = Depends(get_current_user),
                       store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, group_id=group_id)
    return {"deleted_categories": await CategoryService.delete_group(store, group_id)}


@router.post("", status_code=201)
async def create_category(body: CategoryCreate, user_id: str = Depends(get_current_user),
                          store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, group_id=body.category_group_id)
    data = body.model_dump(exclude_none=True, exclude={"category_group_id"})
    return await CategoryService.create_category(store, body.category_group_id, data)


@router.patch("/{category_id}")
async def update_category(category_id: str, body: CategoryUpdate, user_id: str = Depends(get_current_user),
                          store: RecordStore = Depends(get_store)):
    budget_id = await BudgetService.owned_budget_id(store, user_id, category_id=category_id)
    if body.category_group_id:
        target = await BudgetService.owned_budget_id(store, user_id, group_id=body.category_group_id)
        if target != budget_id:
            raise ValidationError("A category can only move between groups of the same budget")
    data = body.model_dump(exclude_none=True)
    category = await CategoryService.update_category(store, category_id, data)
    return {**category, "budget_id": budget_id}


@router.delete("/{category_id}")
async def delete_category(category_id: str, user_id: str = Depends(get_current_user),
                          store: RecordStore = Depends(get_store)):
    """Existing transactions of the category become uncategorized."""
    await BudgetService.owned_budget_id(store, user_id, category_id=category_id)
    return {"uncategorized_transactions": await CategoryService.delete_category(store, category_id)}


@router.get("/{category_id}/summary")
async def category_summary(category_id: str, month: Optional[str] = None, on: Optional[date] = None,
                           user_id: str = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """Budgeted, live activity and available for one category and period."""
    budget_id = await BudgetService.owned_budget_id(store, user_id, category_id=category_id)
    period = await BudgetService.resolve_period(store, budget_id, month, on or date.today())
    return {**await ActivityService.summary(store, category_id, period), "period": period.to_dict()}
