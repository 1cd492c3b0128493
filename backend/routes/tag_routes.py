from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import get_current_user
from record_store import RecordStore, get_store
from services.budget_service import BudgetService
from services.tag_service import TagService

router = APIRouter(prefix="/api/v1/tags", tags=["Tags"])


class TagCreate(BaseModel):
    budget_id: str
    name: str
    color: Optional[str] = None


class TagUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None


@router.get("")
async def list_tags(budget_id: str, user_id: str = Depends(get_current_user),
                    store: RecordStore = Depends(get_store)):
    await BudgetService.get_budget(store, user_id, budget_id)
    return await TagService.list_tags(store, budget_id)


@router.post("", status_code=201)
async def create_tag(body: TagCreate, user_id: str = Depends(get_current_user),
                     store: RecordStore = Depends(get_store)):
    await BudgetService.get_budget(store, user_id, body.budget_id)
    return await TagService.create_tag(store, body.budget_id, body.name, body.color)


@router.patch("/{tag_id}")
async def update_tag(tag_id: str, body: TagUpdate, user_id: str = Depends(get_current_user),
                     store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, tag_id=tag_id)
    return await TagService.update_tag(store, tag_id, body.model_dump(exclude_none=True))


@router.delete("/{tag_id}", status_code=204)
async def delete_tag(tag_id: str, user_id: str = Depends(get_current_user),
                     store: RecordStore = Depends(get_store)):
    await BudgetService.owned_budget_id(store, user_id, tag_id=tag_id)
    await TagService.delete_tag(store, tag_id)
