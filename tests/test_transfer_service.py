from contextlib import asynccontextmanager
from decimal import Decimal

import pytest

from errors import NotFoundError, PartialFailureError, StoreError, ValidationError
from money import to_decimal
from services.ledger_service import LedgerService
from services.payee_service import PayeeService
from services.transaction_service import TransactionService
from services.transfer_service import TransferService
from sql_store import SqlRecordStore


class OutageStore(SqlRecordStore):
    """Commits every call on its own, like PostgREST, and fails balance updates for one account."""

    supports_atomic = False

    def __init__(self, session, failing_account, fail_deletes=False):
        super().__init__(session)
        self.failing_account = failing_account
        self.fail_deletes = fail_deletes

    @asynccontextmanager
    async def atomic(self):
        yield self

    async def increment(self, table, record_id, column, delta):
        if record_id == self.failing_account:
            raise StoreError("simulated outage")
        return await super().increment(table, record_id, column, delta)

    async def delete_where(self, table, filters):
        if self.fail_deletes:
            raise StoreError("simulated outage")
        return await super().delete_where(table, filters)


class AtomicOutageStore(SqlRecordStore):
    def __init__(self, session, failing_account):
        super().__init__(session)
        self.failing_account = failing_account

    async def increment(self, table, record_id, column, delta):
        if record_id == self.failing_account:
            raise StoreError("simulated outage")
        return await super().increment(table, record_id, column, delta)


async def _balance(store, account_id):
    return to_decimal((await store.get("accounts", account_id))["balance"])


async def _two_accounts(seed):
    budget = await seed.budget()
    checking = await seed.account(budget["id"], "Checking", balance="1000.00")
    savings = await seed.account(budget["id"], "Savings", "savings", balance="250.00")
    return budget, checking, savings


@pytest.mark.asyncio
async def test_transfer_conserves_money(store, seed):
    _, checking, savings = await _two_accounts(seed)

    result = await TransferService.transfer(store, checking["id"], savings["id"], "200.00", "2024-03-01", "Rainy day")
    assert result.from_balance == Decimal("800.00")
    assert result.to_balance == Decimal("450.00")
    assert await _balance(store, checking["id"]) + await _balance(store, savings["id"]) == Decimal("1250.00")

    out = await store.get("transactions", result.outflow_id)
    inflow = await store.get("transactions", result.inflow_id)
    assert to_decimal(out["amount"]) == -to_decimal(inflow["amount"]) == Decimal("-200.00")
    assert out["transfer_account_id"] == savings["id"]
    assert inflow["transfer_account_id"] == checking["id"]
    assert out["transfer_transaction_id"] == inflow["id"]
    assert inflow["transfer_transaction_id"] == out["id"]
    assert out["category_id"] is None and inflow["category_id"] is None
    assert out["memo"] == "Rainy day"


@pytest.mark.asyncio
async def test_transfer_payees_are_flagged_and_reused(store, seed):
    budget, checking, savings = await _two_accounts(seed)
    # a real payee that happens to use the reserved name
    await store.insert("payees", {"budget_id": budget["id"], "name": "Transfer: Savings", "is_transfer": False})

    first = await TransferService.transfer(store, checking["id"], savings["id"], 10, "2024-03-01")
    second = await TransferService.transfer(store, checking["id"], savings["id"], 15, "2024-03-02")

    out1 = await store.get("transactions", first.outflow_id)
    out2 = await store.get("transactions", second.outflow_id)
    assert out1["payee_id"] == out2["payee_id"]
    payee = await store.get("payees", out1["payee_id"])
    assert payee["name"] == "Transfer: Savings"
    assert payee["is_transfer"] is True

    visible = await PayeeService.list_payees(store, budget["id"])
    assert "Transfer: Checking" not in [p["name"] for p in visible]


@pytest.mark.parametrize("from_id, to_id, amount, day", [
    ("a", "a", "10", "2024-03-01"),
    ("a", "b", "0", "2024-03-01"),
    ("a", "b", "-5", "2024-03-01"),
    ("a", "b", "ten", "2024-03-01"),
    ("a", "b", "10", "03/01/2024"),
    ("", "b", "10", "2024-03-01"),
])
@pytest.mark.asyncio
async def test_validation_happens_before_any_store_call(from_id, to_id, amount, day):
    # None as the store: any store access would raise AttributeError instead
    with pytest.raises(ValidationError):
        await TransferService.transfer(None, from_id, to_id, amount, day)


@pytest.mark.asyncio
async def test_transfer_rules(store, seed):
    budget, checking, savings = await _two_accounts(seed)
    other = await seed.budget(name="Side business")
    foreign = await seed.account(other["id"], "Business")

    with pytest.raises(NotFoundError):
        await TransferService.transfer(store, checking["id"], "missing", 5, "2024-03-01")
    with pytest.raises(ValidationError):
        await TransferService.transfer(store, checking["id"], foreign["id"], 5, "2024-03-01")

    await store.update("accounts", savings["id"], {"closed": True})
    with pytest.raises(ValidationError):
        await TransferService.transfer(store, checking["id"], savings["id"], 5, "2024-03-01")
    assert await _balance(store, checking["id"]) == Decimal("1000.00")


@pytest.mark.asyncio
async def test_failed_transfer_is_compensated_on_non_atomic_store(store, seed, session_factory):
    _, checking, savings = await _two_accounts(seed)
    flaky = OutageStore(session_factory(), failing_account=savings["id"])

    with pytest.raises(PartialFailureError) as info:
        await TransferService.transfer(flaky, checking["id"], savings["id"], 100, "2024-03-01")
    assert info.value.compensated is True
    assert info.value.completed == ["insert transfer legs", f"debit account {checking['id']}"]

    store.db.expire_all()
    assert await _balance(store, checking["id"]) == Decimal("1000.00")
    assert await _balance(store, savings["id"]) == Decimal("250.00")
    assert await store.select("transactions", {"transfer_account_id": savings["id"]}) == []
    await flaky.close()


@pytest.mark.asyncio
async def test_failed_account_move_is_compensated_on_non_atomic_store(store, seed, session_factory):
    _, checking, savings = await _two_accounts(seed)
    tx = await seed.tx(checking["id"], "-25", "2024-03-02")
    flaky = OutageStore(session_factory(), failing_account=savings["id"])

    with pytest.raises(PartialFailureError) as info:
        await TransactionService.update_transaction(flaky, tx["id"], {"account_id": savings["id"]})
    assert info.value.compensated is True
    assert info.value.completed == ["update transaction", f"apply 25.00 to account {checking['id']}"]

    store.db.expire_all()
    assert (await store.get("transactions", tx["id"]))["account_id"] == checking["id"]
    assert await _balance(store, checking["id"]) == Decimal("975.00")
    assert await _balance(store, checking["id"]) == await LedgerService.computed_balance(store, checking["id"])
    assert await _balance(store, savings["id"]) == Decimal("250.00")
    await flaky.close()


@pytest.mark.asyncio
async def test_failed_compensation_is_reported(store, seed, session_factory):
    _, checking, savings = await _two_accounts(seed)
    flaky = OutageStore(session_factory(), failing_account=savings["id"], fail_deletes=True)

    with pytest.raises(PartialFailureError) as info:
        await TransferService.transfer(flaky, checking["id"], savings["id"], 100, "2024-03-01")
    assert info.value.compensated is False
    assert info.value.pending == ["insert transfer legs"]
    assert info.value.to_dict()["compensated"] is False
    await flaky.close()


@pytest.mark.asyncio
async def test_failed_transfer_rolls_back_on_atomic_store(store, seed, session_factory):
    _, checking, savings = await _two_accounts(seed)
    flaky = AtomicOutageStore(session_factory(), failing_account=savings["id"])

    with pytest.raises(StoreError):
        await TransferService.transfer(flaky, checking["id"], savings["id"], 100, "2024-03-01")

    store.db.expire_all()
    assert await _balance(store, checking["id"]) == Decimal("1000.00")
    assert await store.select("transactions", {"transfer_account_id": savings["id"]}) == []
    await flaky.close()


@pytest.mark.asyncio
async def test_update_transfer_keeps_legs_mirrored(store, seed):
    _, checking, savings = await _two_accounts(seed)
    result = await TransferService.transfer(store, checking["id"], savings["id"], 100, "2024-03-01")

    # edit from the inflow side
    legs = await TransferService.update_transfer(store, result.inflow_id, amount=75, tx_date="2024-03-04",
                                                 memo="adjusted")
    by_id = {leg["id"]: leg for leg in legs}
    assert to_decimal(by_id[result.outflow_id]["amount"]) == Decimal("-75")
    assert to_decimal(by_id[result.inflow_id]["amount"]) == Decimal("75")
    assert by_id[result.outflow_id]["date"] == by_id[result.inflow_id]["date"] == "2024-03-04"
    assert by_id[result.outflow_id]["memo"] == "adjusted"
    assert await _balance(store, checking["id"]) == Decimal("925.00")
    assert await _balance(store, savings["id"]) == Decimal("325.00")

    with pytest.raises(ValidationError):
        await TransferService.update_transfer(store, result.outflow_id, amount=-3)


@pytest.mark.asyncio
async def test_deleting_one_leg_deletes_the_pair(store, seed):
    _, checking, savings = await _two_accounts(seed)
    result = await TransferService.transfer(store, checking["id"], savings["id"], 100, "2024-03-01")

    deleted = await TransactionService.delete_transaction(store, result.outflow_id)
    assert sorted(deleted["deleted"]) == sorted([result.outflow_id, result.inflow_id])
    assert await _balance(store, checking["id"]) == Decimal("1000.00")
    assert await _balance(store, savings["id"]) == Decimal("250.00")


@pytest.mark.asyncio
async def test_find_pair_without_pair_id(store, seed):
    _, checking, savings = await _two_accounts(seed)
    result = await TransferService.transfer(store, checking["id"], savings["id"], 40, "2024-03-01")
    out = await store.get("transactions", result.outflow_id)
    pair = await TransferService.find_pair(store, {**out, "transfer_transaction_id": None})
    assert pair["id"] == result.inflow_id
