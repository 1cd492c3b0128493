from datetime import date

import pytest
from sqlalchemy.orm import sessionmaker

from database import build_engine, init_db
from services.account_service import AccountService
from services.budget_service import BudgetService
from services.category_service import CategoryService
from services.transaction_service import TransactionService
from sql_store import SqlRecordStore

USER_ID = "8f7c1c9e-2d0b-4a59-9f53-3a1c0e2b7d11"


@pytest.fixture
def engine():
    eng = build_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def store(session_factory):
    s = SqlRecordStore(session_factory())
    yield s
    s.db.close()


class Seeder:
    """Builds budgets, accounts and categories through the services, the way the API does."""

    def __init__(self, store):
        self.store = store

    async def budget(self, user_id=USER_ID, name="Household", month_start_day=None):
        if month_start_day is not None:
            await BudgetService.update_settings(self.store, user_id, month_start_day=month_start_day)
        return await BudgetService.create_budget(self.store, user_id, name, "USD")

    async def account(self, budget_id, name="Checking", account_type="checking", balance=0,
                      on_budget=True, on_date=date(2024, 1, 1)):
        return await AccountService.create_account(self.store, budget_id, name, account_type,
                                                   starting_balance=balance, is_on_budget=on_budget,
                                                   on_date=on_date)

    async def group(self, budget_id, name="Everyday"):
        return await CategoryService.create_group(self.store, budget_id, name)

    async def category(self, group_id, name):
        return await CategoryService.create_category(self.store, group_id, {"name": name})

    async def tx(self, account_id, amount, day, category_id=None, payee_name=None, **extra):
        return await TransactionService.create_transaction(self.store, {
            "account_id": account_id,
            "amount": amount,
            "date": day,
            "category_id": category_id,
            "payee_name": payee_name,
            **extra,
        })


@pytest.fixture
def seed(store):
    return Seeder(store)
