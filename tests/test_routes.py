import asyncio

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from auth import get_current_user, verify_token
from config import JWT_ALGORITHM, JWT_AUDIENCE, SUPABASE_JWT_SECRET
from main import app
from record_store import get_store
from services.budget_service import BudgetService

USER_ID = "8f7c1c9e-2d0b-4a59-9f53-3a1c0e2b7d11"


@pytest.fixture
def client(store):
    async def _store():
        yield store

    async def _user():
        return USER_ID

    app.dependency_overrides[get_store] = _store
    app.dependency_overrides[get_current_user] = _user
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_check(client):
    resp = client.get("/api/v1/health-check")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_requires_bearer_token(store):
    async def _store():
        yield store

    app.dependency_overrides[get_store] = _store
    try:
        resp = TestClient(app).get("/api/v1/budgets")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 401


def test_verify_token_reads_sub_claim():
    token = jwt.encode({"sub": USER_ID, "aud": JWT_AUDIENCE}, SUPABASE_JWT_SECRET, algorithm=JWT_ALGORITHM)
    assert verify_token(token)["sub"] == USER_ID
    wrong = jwt.encode({"sub": USER_ID, "aud": JWT_AUDIENCE}, "another-secret", algorithm=JWT_ALGORITHM)
    assert verify_token(wrong) is None


def test_budgeting_flow(client):
    budgets = client.get("/api/v1/budgets").json()
    assert [b["name"] for b in budgets] == ["My Budget"]
    budget_id = budgets[0]["id"]

    checking = client.post("/api/v1/accounts", json={
        "budget_id": budget_id, "name": "Checking", "account_type": "checking",
        "starting_balance": "1000.00", "on_date": "2024-03-01",
    })
    assert checking.status_code == 201
    assert checking.json()["balance"] == 1000
    savings = client.post("/api/v1/accounts", json={
        "budget_id": budget_id, "name": "Savings", "account_type": "savings",
    }).json()

    group = client.post("/api/v1/categories/groups", json={"budget_id": budget_id, "name": "Bills"}).json()
    rent = client.post("/api/v1/categories", json={"category_group_id": group["id"], "name": "Rent"}).json()

    resp = client.put(f"/api/v1/monthly-budgets/categories/{rent['id']}/2024-03", json={"budgeted": "300"})
    assert resp.status_code == 200
    assert resp.json()["ready_to_assign"] == 700

    tx = client.post("/api/v1/transactions", json={
        "account_id": checking.json()["id"], "date": "2024-03-02", "amount": "-250",
        "category_id": rent["id"], "payee_name": "Landlord",
    })
    assert tx.status_code == 201
    assert tx.json()["balance"] == 750

    transfer = client.post("/api/v1/transfers", json={
        "from_account_id": checking.json()["id"], "to_account_id": savings["id"],
        "amount": "100", "date": "2024-03-03",
    })
    assert transfer.status_code == 201
    assert transfer.json()["to_balance"] == 100

    month = client.get(f"/api/v1/monthly-budgets/{budget_id}", params={"month": "2024-03"}).json()
    assert month["ready_to_assign"] == 450
    rent_row = month["groups"][0]["categories"][0]
    assert rent_row["activity"] == -250
    assert rent_row["available"] == 50

    summary = client.get(f"/api/v1/categories/{rent['id']}/summary", params={"month": "2024-03"}).json()
    assert summary["budgeted"] == 300

    listed = client.get("/api/v1/transactions", params={"budget_id": budget_id}).json()
    assert len(listed) == 4

    deleted = client.delete(f"/api/v1/transactions/{tx.json()['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["balance"] == 900


def test_errors_map_to_status_codes(client):
    budget_id = client.get("/api/v1/budgets").json()[0]["id"]
    account = client.post("/api/v1/accounts", json={
        "budget_id": budget_id, "name": "Cash", "account_type": "cash",
    }).json()

    same = client.post("/api/v1/transfers", json={
        "from_account_id": account["id"], "to_account_id": account["id"], "amount": "5", "date": "2024-03-03",
    })
    assert same.status_code == 400
    assert same.json()["error"] == "ValidationError"

    missing = client.patch("/api/v1/accounts/does-not-exist", json={"name": "x"})
    assert missing.status_code == 404
    assert missing.json()["table"] == "accounts"

    bad_day = client.put("/api/v1/budgets/settings", json={"month_start_day": 30})
    assert bad_day.status_code == 400


def test_other_users_budget_is_not_found(client, store):
    other = asyncio.run(BudgetService.create_budget(store, "someone-else", "Theirs", "EUR"))
    resp = client.get(f"/api/v1/budgets/{other['id']}")
    assert resp.status_code == 404
