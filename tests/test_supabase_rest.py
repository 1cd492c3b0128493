import json
from decimal import Decimal

import httpx
import pytest

from errors import ConflictError, NotFoundError, StoreError, ValidationError
from supabase_rest import SupabaseRecordStore, build_params

BASE = "https://example.supabase.co"


def _store(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseRecordStore(BASE, "service-key", client=client)


def test_build_params():
    params = build_params(
        {"budget_id": "b1", "category_id": None, "is_on_budget": True},
        in_={"account_id": ["a1", "a2"]},
        gte={"date": "2024-03-01"},
        lte={"date": "2024-03-31"},
    )
    assert params == [
        ("budget_id", "eq.b1"),
        ("category_id", "is.null"),
        ("is_on_budget", "eq.true"),
        ("account_id", 'in.("a1","a2")'),
        ("date", "gte.2024-03-01"),
        ("date", "lte.2024-03-31"),
    ]


@pytest.mark.asyncio
async def test_select_sends_filters_and_keeps_decimals():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = request.url
        seen["headers"] = request.headers
        return httpx.Response(200, text='[{"id": "a1", "balance": 10.10}]')

    store = _store(handler)
    rows = await store.select("accounts", {"budget_id": "b1"}, order_by="sort_order")
    assert rows == [{"id": "a1", "balance": Decimal("10.10")}]
    assert seen["url"].path == "/rest/v1/accounts"
    assert seen["url"].params["budget_id"] == "eq.b1"
    assert seen["url"].params["order"] == "sort_order.asc"
    assert seen["headers"]["apikey"] == "service-key"
    await store.close()


@pytest.mark.asyncio
async def test_get_missing_row_is_not_found():
    store = _store(lambda request: httpx.Response(200, json=[]))
    with pytest.raises(NotFoundError):
        await store.get("accounts", "nope")
    await store.close()


@pytest.mark.asyncio
async def test_get_with_malformed_id_is_not_found():
    store = _store(lambda request: httpx.Response(400, text='{"code":"22P02","message":"invalid input syntax for type uuid"}'))
    with pytest.raises(NotFoundError):
        await store.get("accounts", "does-not-exist")
    with pytest.raises(ValidationError):
        await store.select("accounts", {"id": "does-not-exist"})
    await store.close()


@pytest.mark.asyncio
async def test_increment_calls_the_balance_function():
    captured = {}

    def handler(request: httpx.Request):
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, text="75.25")

    store = _store(handler)
    balance = await store.increment("accounts", "a1", "balance", Decimal("-24.75"))
    assert balance == Decimal("75.25")
    assert captured["path"] == "/rest/v1/rpc/adjust_account_balance"
    assert captured["body"] == {"p_id": "a1", "p_delta": "-24.75"}
    await store.close()


@pytest.mark.asyncio
async def test_insert_many_posts_one_array():
    bodies = []

    def handler(request: httpx.Request):
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json=bodies[-1])

    store = _store(handler)
    rows = await store.insert_many("transactions", [{"id": "t1", "amount": Decimal("-5")},
                                                    {"id": "t2", "amount": Decimal("5")}])
    assert len(bodies) == 1
    assert [r["id"] for r in rows] == ["t1", "t2"]
    await store.close()


@pytest.mark.asyncio
async def test_upsert_uses_on_conflict():
    captured = {}

    def handler(request: httpx.Request):
        captured["params"] = request.url.params
        captured["prefer"] = request.headers["prefer"]
        return httpx.Response(201, json=[{"id": "m1", "budgeted": 10}])

    store = _store(handler)
    row = await store.upsert("monthly_budgets", {"category_id": "c1", "month": "2024-03-01", "budgeted": 10},
                             on_conflict=("category_id", "month"))
    assert row["id"] == "m1"
    assert captured["params"]["on_conflict"] == "category_id,month"
    assert "merge-duplicates" in captured["prefer"]
    await store.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("status, error", [(404, NotFoundError), (409, ConflictError), (500, StoreError)])
async def test_http_errors_are_mapped(status, error):
    store = _store(lambda request: httpx.Response(status, text="boom"))
    with pytest.raises(error):
        await store.select("accounts")
    await store.close()


@pytest.mark.asyncio
async def test_timeouts_become_store_errors():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    store = _store(handler)
    with pytest.raises(StoreError):
        await store.update("accounts", "a1", {"name": "x"})
    await store.close()


def test_missing_configuration():
    with pytest.raises(ValueError):
        SupabaseRecordStore("", "")
