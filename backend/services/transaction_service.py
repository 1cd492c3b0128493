"""
transaction_service.py - Transactions
Create / edit / delete single transactions. Every write goes through the
Balance Ledger inside a Saga, then refreshes the cached monthly row of the
affected category. Transfer legs are handed to TransferService so the pair
stays mirrored.
"""

import logging

from database import new_id
from errors import ValidationError
from money import to_decimal
from record_store import RecordStore
from services.budget_service import BudgetService
from services.ledger_service import LedgerService
from services.monthly_budget_service import MonthlyBudgetService
from services.payee_service import PayeeService
from services.period_service import budget_period, parse_date
from services.saga import Saga
from services.transfer_service import TransferService, is_transfer

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("account_id", "category_id", "date", "amount", "memo", "cleared", "approved", "flag_color")


def _amount(value):
    if value is None:
        raise ValidationError("amount is required")
    try:
        return to_decimal(value)
    except ValueError as e:
        raise ValidationError(str(e)) from e


class TransactionService:
    @staticmethod
    async def _open_account(store: RecordStore, account_id: str) -> dict:
        if not account_id:
            raise ValidationError("account_id is required")
        account = await store.get("accounts", account_id)
        if account.get("closed"):
            raise ValidationError(f"Account '{account['name']}' is closed")
        return account

    @staticmethod
    async def _check_category(store: RecordStore, budget_id: str, category_id: str | None):
        if not category_id:
            return
        owner = await MonthlyBudgetService.budget_id_for_category(store, category_id)
        if owner != budget_id:
            raise ValidationError("Category belongs to a different budget")

    @staticmethod
    async def refresh_caches(store: RecordStore, budget_id: str, pairs) -> None:
        """Refresh the cached monthly row for every (category_id, date) pair touched."""
        pairs = {(c, str(d)[:10]) for c, d in pairs if c}
        if not pairs:
            return
        start_day = await BudgetService.month_start_day(store, budget_id)
        seen = set()
        for category_id, day in pairs:
            period = budget_period(day, start_day)
            if (category_id, period.month_key) in seen:
                continue
            seen.add((category_id, period.month_key))
            await MonthlyBudgetService.refresh_category(store, category_id, period)

    # ------------------------------------------------------------------
    @staticmethod
    async def create_transaction(store: RecordStore, data: dict) -> dict:
        """
        Create a transaction and move its account balance.

        `payee_name` is resolved to a payee (created when new). Without a
        category_id the payee's learned category is applied; with one, the
        payee -> category rule is learned. `tag_ids` are attached.
        Returns the row plus the account's new `balance`.
        """
        amount = _amount(data.get("amount"))
        day = parse_date(data.get("date")).isoformat() if data.get("date") else None
        if day is None:
            raise ValidationError("date is required")

        account = await TransactionService._open_account(store, data.get("account_id"))
        budget_id = account["budget_id"]
        category_id = data.get("category_id")
        await TransactionService._check_category(store, budget_id, category_id)
        tag_ids = list(dict.fromkeys(data.get("tag_ids") or []))
        if tag_ids:
            found = await store.select("tags", {"budget_id": budget_id}, in_={"id": tag_ids})
            if len(found) != len(tag_ids):
                raise ValidationError("Every tag must belong to the transaction's budget")

        payee_name = (data.get("payee_name") or "").strip()
        payee_id = data.get("payee_id")
        if payee_name:
            payee_id = (await PayeeService.get_or_create(store, budget_id, payee_name))["id"]
            if not category_id:
                category_id = await PayeeService.suggest_category(store, budget_id, payee_name)

        row = {
            "id": new_id(),
            "account_id": account["id"],
            "category_id": category_id,
            "payee_id": payee_id,
            "date": day,
            "amount": amount,
            "memo": (data.get("memo") or "").strip() or None,
            "cleared": bool(data.get("cleared", False)),
            "approved": bool(data.get("approved", True)),
            "flag_color": data.get("flag_color"),
        }

        async with Saga(store, "create transaction").run() as saga:
            tx = await saga.step(
                "insert transaction",
                lambda: store.insert("transactions", row),
                undo=lambda: store.delete("transactions", row["id"]),
            )
            balance = await saga.step(
                f"apply {amount} to account {account['id']}",
                lambda: LedgerService.record_created(store, tx),
                undo=lambda: LedgerService.record_deleted(store, tx),
            )
            if tag_ids:
                await saga.step(
                    "attach tags",
                    lambda: store.insert_many("transaction_tags",
                                              [{"transaction_id": tx["id"], "tag_id": t} for t in tag_ids]),
                    undo=lambda: store.delete_where("transaction_tags", {"transaction_id": tx["id"]}),
                )

        if payee_name and data.get("category_id"):
            await PayeeService.learn_category(store, budget_id, payee_name, data["category_id"])
        await TransactionService.refresh_caches(store, budget_id, [(category_id, day)])

        logger.info(f"Created transaction {tx['id']} ({amount}) on account {account['id']}")
        return {**tx, "balance": balance}

    @staticmethod
    async def update_transaction(store: RecordStore, tx_id: str, data: dict) -> dict:
        """Apply an edit. Balance deltas go to the old and new account through the ledger."""
        old = await store.get("transactions", tx_id)

        if is_transfer(old):
            if data.get("account_id") not in (None, old["account_id"]) or data.get("category_id"):
                raise ValidationError("A transfer's accounts and category cannot be edited; delete and recreate it")
            amount = abs(_amount(data["amount"])) if data.get("amount") is not None else None
            legs = await TransferService.update_transfer(store, tx_id, amount=amount, tx_date=data.get("date"),
                                                         memo=data.get("memo"), cleared=data.get("cleared"))
            return legs[0]

        changes = {k: data[k] for k in EDITABLE_FIELDS if k in data}
        if not changes.get("account_id", True):
            raise ValidationError("account_id cannot be empty")
        if "amount" in changes:
            changes["amount"] = _amount(changes["amount"])
        if "date" in changes:
            changes["date"] = parse_date(changes["date"]).isoformat()
        if "memo" in changes:
            changes["memo"] = (changes["memo"] or "").strip() or None

        old_account = await store.get("accounts", old["account_id"])
        budget_id = old_account["budget_id"]
        if changes.get("account_id") and changes["account_id"] != old["account_id"]:
            new_account = await TransactionService._open_account(store, changes["account_id"])
            if new_account["budget_id"] != budget_id:
                raise ValidationError("Cannot move a transaction to another budget")
        await TransactionService._check_category(store, budget_id, changes.get("category_id"))

        payee_name = (data.get("payee_name") or "").strip()
        if payee_name:
            changes["payee_id"] = (await PayeeService.get_or_create(store, budget_id, payee_name))["id"]
        if not changes:
            raise ValidationError("Nothing to update")

        previous = {k: old.get(k) for k in changes}
        new = {**old, **changes}

        async with Saga(store, "update transaction").run() as saga:
            updated = await saga.step(
                "update transaction",
                lambda: store.update("transactions", tx_id, changes),
                undo=lambda: store.update("transactions", tx_id, previous),
            )
            balances = {}
            # one saga step per account delta
            for account_id, delta in LedgerService.update_deltas(old, new):
                balances[account_id] = await saga.step(
                    f"apply {delta} to account {account_id}",
                    lambda a=account_id, d=delta: LedgerService.apply_delta(store, a, d),
                    undo=lambda a=account_id, d=delta: LedgerService.apply_delta(store, a, -d),
                )

        if payee_name and changes.get("category_id"):
            await PayeeService.learn_category(store, budget_id, payee_name, changes["category_id"])
        await TransactionService.refresh_caches(store, budget_id, [
            (old.get("category_id"), old["date"]),
            (updated.get("category_id"), updated["date"]),
        ])
        return {**updated, "balances": balances}

    @staticmethod
    async def delete_transaction(store: RecordStore, tx_id: str) -> dict:
        tx = await store.get("transactions", tx_id)
        if is_transfer(tx):
            deleted = await TransferService.delete_transfer(store, tx_id)
            return {"deleted": deleted}

        account = await store.get("accounts", tx["account_id"])
        tags = await store.select("transaction_tags", {"transaction_id": tx_id})

        async with Saga(store, "delete transaction").run() as saga:
            if tags:
                await saga.step(
                    "detach tags",
                    lambda: store.delete_where("transaction_tags", {"transaction_id": tx_id}),
                    undo=lambda: store.insert_many("transaction_tags", tags),
                )
            await saga.step(
                "delete transaction",
                lambda: store.delete("transactions", tx_id),
                undo=lambda: store.insert("transactions", tx),
            )
            balance = await saga.step(
                f"reverse {tx['amount']} on account {tx['account_id']}",
                lambda: LedgerService.record_deleted(store, tx),
                undo=lambda: LedgerService.record_created(store, tx),
            )

        await TransactionService.refresh_caches(store, account["budget_id"], [(tx.get("category_id"), tx["date"])])
        logger.info(f"Deleted transaction {tx_id}")
        return {"deleted": [tx_id], "balance": balance}

    # ------------------------------------------------------------------
    @staticmethod
    async def list_transactions(store: RecordStore, budget_id: str | None = None, account_id: str | None = None,
                                category_id: str | None = None, start=None, end=None) -> list[dict]:
        """Newest first. Scope by account, or by budget (all its accounts); optionally by category and date range."""
        filters = {}
        in_ = {}
        if account_id:
            filters["account_id"] = account_id
        elif budget_id:
            accounts = await store.select("accounts", {"budget_id": budget_id})
            if not accounts:
                return []
            in_["account_id"] = [a["id"] for a in accounts]
        else:
            raise ValidationError("budget_id or account_id is required")
        if category_id:
            filters["category_id"] = category_id

        gte = {"date": parse_date(start).isoformat()} if start else None
        lte = {"date": parse_date(end).isoformat()} if end else None
        txs = await store.select("transactions", filters, in_=in_ or None, gte=gte, lte=lte,
                                 order_by="date", descending=True)
        if not txs:
            return txs

        payee_ids = list({t["payee_id"] for t in txs if t.get("payee_id")})
        payees = {}
        if payee_ids:
            payees = {p["id"]: p["name"] for p in await store.select("payees", in_={"id": payee_ids})}
        for t in txs:
            t["payee_name"] = payees.get(t.get("payee_id"))
            t["is_transfer"] = is_transfer(t)
        return txs
