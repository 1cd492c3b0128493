"""
ledger_service.py - Balance Ledger
The only code path that writes `accounts.balance`. Every transaction write
turns into signed deltas applied here, so after any sequence of creates,
edits and deletes an account's balance equals the sum of its transactions.
reconcile_* recompute that sum from scratch as a consistency backstop.
"""

import logging
from decimal import Decimal

from money import ZERO, to_decimal, total
from record_store import RecordStore

logger = logging.getLogger(__name__)


class LedgerService:
    @staticmethod
    async def apply_delta(store: RecordStore, account_id: str, delta) -> Decimal:
        """Atomically add a signed delta to an account's cached balance; returns the new balance."""
        amount = to_decimal(delta)
        if amount == ZERO:
            account = await store.get("accounts", account_id)
            return to_decimal(account["balance"])
        new_balance = to_decimal(await store.increment("accounts", account_id, "balance", amount))
        logger.debug(f"Ledger: account {account_id} {amount:+} -> {new_balance}")
        return new_balance

    @staticmethod
    async def record_created(store: RecordStore, tx: dict) -> Decimal:
        return await LedgerService.apply_delta(store, tx["account_id"], to_decimal(tx["amount"]))

    @staticmethod
    async def record_deleted(store: RecordStore, tx: dict) -> Decimal:
        return await LedgerService.apply_delta(store, tx["account_id"], -to_decimal(tx["amount"]))

    @staticmethod
    def update_deltas(old: dict, new: dict) -> list[tuple[str, Decimal]]:
        """
        The (account_id, delta) pairs an edit needs. Same account: one delta of
        (new - old), none when the amount is unchanged. Account moved: -old on
        the old account and +new on the new one.
        """
        old_amount = to_decimal(old["amount"])
        new_amount = to_decimal(new["amount"])
        if old["account_id"] == new["account_id"]:
            if old_amount == new_amount:
                return []
            return [(new["account_id"], new_amount - old_amount)]
        return [(old["account_id"], -old_amount), (new["account_id"], new_amount)]

    @staticmethod
    async def record_updated(store: RecordStore, old: dict, new: dict) -> dict:
        """Apply an edit. Returns {account_id: new_balance} for every account touched."""
        balances = {}
        for account_id, delta in LedgerService.update_deltas(old, new):
            balances[account_id] = await LedgerService.apply_delta(store, account_id, delta)
        return balances

    # ------------------------------------------------------------------
    @staticmethod
    async def computed_balance(store: RecordStore, account_id: str) -> Decimal:
        """Sum of every existing transaction on the account."""
        txs = await store.select("transactions", {"account_id": account_id})
        return total(t["amount"] for t in txs)

    @staticmethod
    async def reconcile_account(store: RecordStore, account_id: str) -> dict:
        """Rewrite the cached balance if it drifted from the transaction sum."""
        account = await store.get("accounts", account_id)
        cached = to_decimal(account["balance"])
        actual = await LedgerService.computed_balance(store, account_id)
        drift = cached - actual
        if drift != ZERO:
            logger.warning(f"Ledger drift on account {account_id}: cached {cached}, actual {actual}")
            # adjust by the drift, never overwrite
            await store.increment("accounts", account_id, "balance", -drift)
        return {
            "account_id": account_id,
            "cached_balance": cached,
            "balance": actual,
            "drift": drift,
            "repaired": drift != ZERO,
        }

    @staticmethod
    async def reconcile_budget(store: RecordStore, budget_id: str) -> list[dict]:
        accounts = await store.select("accounts", {"budget_id": budget_id}, order_by="sort_order")
        return [await LedgerService.reconcile_account(store, a["id"]) for a in accounts]
