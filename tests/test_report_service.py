from decimal import Decimal

import pytest

from errors import ValidationError
from services.report_service import ReportService
from services.transfer_service import TransferService


@pytest.mark.asyncio
async def test_spending_report_excludes_transfers(store, seed):
    budget = await seed.budget()
    checking = await seed.account(budget["id"], "Checking")
    savings = await seed.account(budget["id"], "Savings", "savings")
    bills = await seed.group(budget["id"], "Bills")
    everyday = await seed.group(budget["id"], "Everyday")
    rent = await seed.category(bills["id"], "Rent")
    food = await seed.category(everyday["id"], "Food")

    await seed.tx(checking["id"], "2000", "2024-02-01", payee_name="Employer")
    await seed.tx(checking["id"], "-900", "2024-02-02", rent["id"])
    await seed.tx(checking["id"], "-100", "2024-03-03", food["id"])
    await seed.tx(checking["id"], "-60", "2024-03-04")
    await TransferService.transfer(store, checking["id"], savings["id"], 500, "2024-03-05")

    report = await ReportService.spending_report(store, budget["id"], "2024-02-01", "2024-03-31")
    assert report["income"] == Decimal("2000")
    assert report["expenses"] == Decimal("1060")
    assert report["net"] == Decimal("940")

    spending = report["spending_by_category"]
    assert [(r["category"], r["category_group"], r["total"]) for r in spending] == [
        ("Rent", "Bills", Decimal("900")),
        ("Food", "Everyday", Decimal("100")),
        ("Uncategorized", "Other", Decimal("60")),
    ]
    assert report["spending_by_group"][0] == {"category_group": "Bills", "total": Decimal("900")}
    assert report["monthly_trend"] == [
        {"month": "2024-02", "income": Decimal("2000"), "expenses": Decimal("900")},
        {"month": "2024-03", "income": Decimal("0"), "expenses": Decimal("160")},
    ]


@pytest.mark.asyncio
async def test_spending_report_rejects_reversed_range(store, seed):
    budget = await seed.budget()
    with pytest.raises(ValidationError):
        await ReportService.spending_report(store, budget["id"], "2024-03-01", "2024-02-01")


@pytest.mark.asyncio
async def test_net_worth(store, seed):
    budget = await seed.budget()
    await seed.account(budget["id"], "Checking", balance="1500")
    await seed.account(budget["id"], "Visa", "credit_card", balance="-400")
    await seed.account(budget["id"], "Car loan", "loan", balance="-3000", on_budget=False)
    closed = await seed.account(budget["id"], "Old savings", "savings", balance="50")
    await store.update("accounts", closed["id"], {"closed": True})

    worth = await ReportService.net_worth(store, budget["id"])
    assert worth["assets"] == Decimal("1500")
    assert worth["liabilities"] == Decimal("3400")
    assert worth["net_worth"] == Decimal("-1900")
    assert [a["name"] for a in worth["liability_accounts"]] == ["Visa", "Car loan"]
