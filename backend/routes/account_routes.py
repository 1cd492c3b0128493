from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import get_current_user
from record_store import RecordStore, get_store
from services.account_service import AccountService
from services.budget_service import BudgetService
from services.ledger_service import LedgerService

router = APIRouter(prefix="/api/v1/accounts", tags=["Accounts"])


class AccountCreate(BaseModel):
    budget_id: str
    name: str
    account_type: str
    starting_balance: Decimal = Decimal("0")
    is_on_budget: bool = True
    on_date: Optional[date] = None
    note: Optional[str] = None


class AccountUpdate(BaseModel):
    name: Optional[str] = None
    account_type: Optional[str] = None
    is_on_budget: Optional[bool] = None
    closed: Optional[bool] = None
    note: Optional[str] = None
    sort_order: Optional[int] = None


@router.get("")
async def list_accounts(budget_id: str, include_closed: bool = True, user_id: str = Depends(get_current_user),
                        store: RecordStore = Depends(get_store)):
    await BudgetService.get_budget(store, user_id, budget_id)
    return await AccountService.list_accounts(store, budget_id, include_closed)


@router.post("", status_code=201)
async def create_account(body: AccountCreate, user_id: str = Depends(get_current_user),
                         store: RecordStore = Depends(get_store)):
    await BudgetService.get_budget(store, user_id, body.budget_id)
    return await AccountService.create_account(store, body.budget_id, body.name, body.account_type,
                                               body.starting_balance, body.is_on_budget, body.on_date, body.note)


@router.patch("/{account_id}")
async def update_account(account_id: str, body: AccountUpdate, user_id: str = Depends(get_current_user),
                         store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, account_id=account_id)
    return await AccountService.update_account(store, account_id, body.model_dump(exclude_none=True))


@router.delete("/{account_id}", status_code=204)
async def delete_account(account_id: str, user_id: str = Depends(get_current_user),
                         store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, account_id=account_id)
    await AccountService.delete_account(store, account_id)


@router.post("/{account_id}/reconcile")
async def reconcile_account(account_id: str, user_id: str = Depends(get_current_user),
                            store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, account_id=account_id)
    return await LedgerService.reconcile_account(store, account_id)
