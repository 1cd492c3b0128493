import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import get_current_user
from record_store import RecordStore, get_store
from services.budget_service import BudgetService
from services.transfer_service import TransferService

router = APIRouter(prefix="/api/v1/transfers", tags=["Transfers"])


class TransferCreate(BaseModel):
    from_account_id: str
    to_account_id: str
    amount: Decimal
    date: datetime.date
    memo: Optional[str] = None


class TransferUpdate(BaseModel):
    amount: Optional[Decimal] = None
    date: Optional[datetime.date] = None
    memo: Optional[str] = None
    cleared: Optional[bool] = None


@router.post("", status_code=201)
async def create_transfer(body: TransferCreate, user_id: str = Depends(get_current_user),
                          store: RecordStore = Depends(get_store)):
    """Move money between two accounts of the same budget."""
    TransferService.validate(body.from_account_id, body.to_account_id, body.amount, body.date)
    await BudgetService.owned_budget_id(store, user_id, account_id=body.from_account_id)
    await BudgetService.owned_budget_id(store, user_id, account_id=body.to_account_id)
    result = await TransferService.transfer(store, body.from_account_id, body.to_account_id,
                                            body.amount, body.date, body.memo)
    return result.to_dict()


@router.patch("/{tx_id}")
async def update_transfer(tx_id: str, body: TransferUpdate, user_id: str = Depends(get_current_user),
                          store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, transaction_id=tx_id)
    return await TransferService.update_transfer(store, tx_id, body.amount, body.date, body.memo, body.cleared)


@router.delete("/{tx_id}")
async def delete_transfer(tx_id: str, user_id: str = Depends(get_current_user),
                          store: RecordStore = Depends(get_store)):
    """Delete both legs of a transfer."""
    await BudgetService.owned_budget_id(store, user_id, transaction_id=tx_id)
    return {"deleted": await TransferService.delete_transfer(store, tx_id)}
