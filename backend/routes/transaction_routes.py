import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import get_current_user
from errors import ValidationError
from record_store import RecordStore, get_store
from services.budget_service import BudgetService
from services.tag_service import TagService
from services.transaction_service import TransactionService

router = APIRouter(prefix="/api/v1/transactions", tags=["Transactions"])


class TransactionCreate(BaseModel):
    account_id: str
    date: datetime.date
    amount: Decimal  # negative = outflow
    category_id: Optional[str] = None
    payee_name: Optional[str] = None
    memo: Optional[str] = None
    cleared: bool = False
    approved: bool = True
    flag_color: Optional[str] = None
    tag_ids: list[str] = []


class TransactionUpdate(BaseModel):
    account_id: Optional[str] = None
    date: Optional[datetime.date] = None
    amount: Optional[Decimal] = None
    category_id: Optional[str] = None
    payee_name: Optional[str] = None
    memo: Optional[str] = None
    cleared: Optional[bool] = None
    approved: Optional[bool] = None
    flag_color: Optional[str] = None


@router.get("")
async def list_transactions(budget_id: Optional[str] = None, account_id: Optional[str] = None,
                            category_id: Optional[str] = None, start: Optional[datetime.date] = None,
                            end: Optional[datetime.date] = None, user_id: str = Depends(get_current_user),
                            store: RecordStore = Depends(get_store)):
    budget_id = await BudgetService.owned_budget_id(store, user_id, budget_id=budget_id, account_id=account_id)
    return await TransactionService.list_transactions(store, budget_id=budget_id, account_id=account_id,
                                                      category_id=category_id, start=start, end=end)


@router.post("", status_code=201)
async def create_transaction(body: TransactionCreate, user_id: str = Depends(get_current_user),
                             store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, account_id=body.account_id)
    return await TransactionService.create_transaction(store, body.model_dump())


@router.patch("/{tx_id}")
async def update_transaction(tx_id: str, body: TransactionUpdate, user_id: str = Depends(get_current_user),
                             store: RecordStore = Depends(get_store)):
    """Only fields present in the body change; `category_id: null` uncategorizes."""
    await BudgetService.owned_budget_id(store, user_id, transaction_id=tx_id)
    if body.account_id:
        await BudgetService.owned_budget_id(store, user_id, account_id=body.account_id)
    return await TransactionService.update_transaction(store, tx_id, body.model_dump(exclude_unset=True))


@router.delete("/{tx_id}")
async def delete_transaction(tx_id: str, user_id: str = Depends(get_current_user),
                             store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, transaction_id=tx_id)
    return await TransactionService.delete_transaction(store, tx_id)


@router.get("/{tx_id}/tags")
async def transaction_tags(tx_id: str, user_id: str = Depends(get_current_user),
                           store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, transaction_id=tx_id)
    return await TagService.tags_for_transaction(store, tx_id)


@router.post("/{tx_id}/tags/{tag_id}", status_code=201)
async def attach_tag(tx_id: str, tag_id: str, user_id: str = Depends(get_current_user),
                     store: RecordStore = Depends(get_store)):
    budget_id = await BudgetService.owned_budget_id(store, user_id, transaction_id=tx_id)
    if await BudgetService.owned_budget_id(store, user_id, tag_id=tag_id) != budget_id:
        raise ValidationError("Tag belongs to a different budget")
    return await TagService.attach(store, tx_id, tag_id)


@router.delete("/{tx_id}/tags/{tag_id}")
async def detach_tag(tx_id: str, tag_id: str, user_id: str = Depends(get_current_user),
                     store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, transaction_id=tx_id)
    return {"removed": await TagService.detach(store, tx_id, tag_id)}
