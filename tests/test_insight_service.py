from decimal import Decimal

import pytest

from services.insight_service import InsightService
from services.monthly_budget_service import MonthlyBudgetService
from services.period_service import period_for_month

FEB = period_for_month("2024-02", 1)
MARCH = period_for_month("2024-03", 1)


async def _setup(store, seed):
    budget = await seed.budget()
    acc = await seed.account(budget["id"], balance=5000)
    group = await seed.group(budget["id"])
    names = ["Dining", "Fuel", "Gifts", "Groceries"]
    cats = {n: await seed.category(group["id"], n) for n in names}

    await MonthlyBudgetService.set_budgeted(store, cats["Dining"]["id"], MARCH, 100)
    await MonthlyBudgetService.set_budgeted(store, cats["Fuel"]["id"], MARCH, 100)
    await MonthlyBudgetService.set_budgeted(store, cats["Groceries"]["id"], MARCH, 1000)

    await seed.tx(acc["id"], "-120", "2024-03-05", cats["Dining"]["id"])     # overspent
    await seed.tx(acc["id"], "-85", "2024-03-06", cats["Fuel"]["id"])        # 85% used
    await seed.tx(acc["id"], "-30", "2024-03-07", cats["Gifts"]["id"])       # nothing budgeted
    await seed.tx(acc["id"], "-200", "2024-02-10", cats["Groceries"]["id"])  # last period
    await seed.tx(acc["id"], "-300", "2024-03-10", cats["Groceries"]["id"])
    return budget, cats


@pytest.mark.asyncio
async def test_insights_are_sorted_and_typed(store, seed):
    budget, cats = await _setup(store, seed)
    insights = await InsightService.insights(store, budget["id"], MARCH, today="2024-03-31")

    assert [(i["id"].split("-")[0], i["type"]) for i in insights] == [
        ("overspent", "warning"),
        ("negative", "warning"),
        ("atrisk", "info"),
        ("trend", "tip"),
    ]
    overspent = insights[0]
    assert overspent["title"] == "Overspent: Dining"
    assert overspent["value"] == Decimal("20")
    assert insights[1]["category"] == "Gifts"
    assert insights[2]["title"] == "Fuel: 85% used"
    assert insights[3]["value"] == 50


@pytest.mark.asyncio
async def test_trend_uses_progress_through_the_period(store, seed):
    budget, _ = await _setup(store, seed)
    # at mid-month last period's pace projects 100, so 300 is far ahead
    mid = await InsightService.insights(store, budget["id"], MARCH, today="2024-03-16")
    trend = [i for i in mid if i["type"] == "tip"]
    assert trend and trend[0]["category"] == "Groceries"
    assert trend[0]["value"] > 50


@pytest.mark.asyncio
async def test_no_history_means_no_trend(store, seed):
    budget, _ = await _setup(store, seed)
    insights = await InsightService.insights(store, budget["id"], FEB, today="2024-02-29")
    assert all(i["type"] != "tip" for i in insights)


@pytest.mark.asyncio
async def test_at_most_five(store, seed):
    budget = await seed.budget()
    acc = await seed.account(budget["id"], balance=5000)
    group = await seed.group(budget["id"])
    for n in range(7):
        cat = await seed.category(group["id"], f"Cat {n}")
        await seed.tx(acc["id"], "-10", "2024-03-02", cat["id"])
    insights = await InsightService.insights(store, budget["id"], MARCH)
    assert len(insights) == 5


@pytest.mark.asyncio
async def test_same_name_in_another_group_keeps_its_own_insights(store, seed):
    budget, cats = await _setup(store, seed)
    acc = (await store.select("accounts", {"budget_id": budget["id"]}))[0]
    weekend = await seed.group(budget["id"], "Weekend")
    twin = await seed.category(weekend["id"], "Groceries")
    await MonthlyBudgetService.set_budgeted(store, twin["id"], MARCH, 50)
    await seed.tx(acc["id"], "-80", "2024-03-12", twin["id"])

    insights = await InsightService.insights(store, budget["id"], MARCH, today="2024-03-31")
    assert any(i["id"] == f"overspent-{twin['id']}" for i in insights)
    tips = [i for i in insights if i["type"] == "tip"]
    assert [t["category_id"] for t in tips] == [cats["Groceries"]["id"]]
