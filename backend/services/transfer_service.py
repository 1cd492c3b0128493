"""
transfer_service.py - Transfers between accounts
A transfer is two transaction rows, an outflow on the source account and an
inflow on the destination, with opposite amounts, no category, and
transfer_account_id / transfer_transaction_id pointing at each other.
Both legs are inserted in one multi-row insert and both balances move
through the ledger. The sequence runs as a Saga: atomic on SQL stores,
compensated step by step on PostgREST.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from database import new_id
from errors import NotFoundError, ValidationError
from money import ZERO, to_decimal
from record_store import RecordStore
from services.ledger_service import LedgerService
from services.payee_service import PayeeService
from services.period_service import parse_date
from services.saga import Saga

logger = logging.getLogger(__name__)


@dataclass
class TransferResult:
    outflow_id: str
    inflow_id: str
    amount: Decimal
    from_balance: Decimal
    to_balance: Decimal

    def to_dict(self) -> dict:
        return {
            "outflow_transaction_id": self.outflow_id,
            "inflow_transaction_id": self.inflow_id,
            "amount": self.amount,
            "from_balance": self.from_balance,
            "to_balance": self.to_balance,
        }


def _positive_amount(amount) -> Decimal:
    try:
        value = to_decimal(amount)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if value <= ZERO:
        raise ValidationError("Transfer amount must be greater than zero")
    return value


def is_transfer(tx: dict) -> bool:
    return bool(tx.get("transfer_account_id"))


async def _delete_rows(store: RecordStore, table: str, ids: list[str]):
    for record_id in ids:
        await store.delete_where(table, {"id": record_id})


class TransferService:
    @staticmethod
    def validate(from_account_id: str, to_account_id: str, amount, tx_date) -> tuple[Decimal, str]:
        """Reject bad input before any store call."""
        if not from_account_id or not to_account_id:
            raise ValidationError("Both from_account_id and to_account_id are required")
        if from_account_id == to_account_id:
            raise ValidationError("Cannot transfer to the same account")
        return _positive_amount(amount), parse_date(tx_date).isoformat()

    @staticmethod
    async def transfer(store: RecordStore, from_account_id: str, to_account_id: str, amount,
                       tx_date, memo: str | None = None) -> TransferResult:
        value, day = TransferService.validate(from_account_id, to_account_id, amount, tx_date)

        from_acc = await store.get("accounts", from_account_id)
        to_acc = await store.get("accounts", to_account_id)
        if from_acc["budget_id"] != to_acc["budget_id"]:
            raise ValidationError("Accounts belong to different budgets")
        for acc in (from_acc, to_acc):
            if acc.get("closed"):
                raise ValidationError(f"Account '{acc['name']}' is closed")

        budget_id = from_acc["budget_id"]
        out_payee = await PayeeService.get_or_create_transfer_payee(store, budget_id, to_acc["name"])
        in_payee = await PayeeService.get_or_create_transfer_payee(store, budget_id, from_acc["name"])

        out_id, in_id = new_id(), new_id()
        memo = (memo or "").strip() or None
        legs = [
            {
                "id": out_id,
                "account_id": from_account_id,
                "category_id": None,
                "payee_id": out_payee["id"],
                "transfer_account_id": to_account_id,
                "transfer_transaction_id": in_id,
                "date": day,
                "amount": -value,
                "memo": memo,
                "cleared": False,
                "approved": True,
            },
            {
                "id": in_id,
                "account_id": to_account_id,
                "category_id": None,
                "payee_id": in_payee["id"],
                "transfer_account_id": from_account_id,
                "transfer_transaction_id": out_id,
                "date": day,
                "amount": value,
                "memo": memo,
                "cleared": False,
                "approved": True,
            },
        ]

        async with Saga(store, "transfer").run() as saga:
            await saga.step(
                "insert transfer legs",
                lambda: store.insert_many("transactions", legs),
                undo=lambda: _delete_rows(store, "transactions", [out_id, in_id]),
            )
            from_balance = await saga.step(
                f"debit account {from_account_id}",
                lambda: LedgerService.apply_delta(store, from_account_id, -value),
                undo=lambda: LedgerService.apply_delta(store, from_account_id, value),
            )
            to_balance = await saga.step(
                f"credit account {to_account_id}",
                lambda: LedgerService.apply_delta(store, to_account_id, value),
                undo=lambda: LedgerService.apply_delta(store, to_account_id, -value),
            )

        logger.info(f"Transfer {value} from {from_account_id} to {to_account_id} ({out_id}/{in_id})")
        return TransferResult(out_id, in_id, value, from_balance, to_balance)

    # ------------------------------------------------------------------
    @staticmethod
    async def find_pair(store: RecordStore, tx: dict) -> dict | None:
        """The other leg of a transfer. Falls back to matching rows written without a pair id."""
        if not is_transfer(tx):
            return None
        if tx.get("transfer_transaction_id"):
            try:
                return await store.get("transactions", tx["transfer_transaction_id"])
            except NotFoundError:
                return None
        candidates = await store.select("transactions", {
            "account_id": tx["transfer_account_id"],
            "transfer_account_id": tx["account_id"],
            "date": tx["date"],
        })
        target = -to_decimal(tx["amount"])
        for candidate in candidates:
            if to_decimal(candidate["amount"]) == target:
                return candidate
        return None

    @staticmethod
    async def delete_transfer(store: RecordStore, tx_id: str) -> list[str]:
        """Delete a transfer leg and its pair, reversing both balances. Returns the deleted ids."""
        tx = await store.get("transactions", tx_id)
        if not is_transfer(tx):
            raise ValidationError("Transaction is not a transfer")
        pair = await TransferService.find_pair(store, tx)
        legs = [tx] + ([pair] if pair else [])

        async with Saga(store, "delete transfer").run() as saga:
            for leg in legs:
                amount = to_decimal(leg["amount"])
                await saga.step(
                    f"delete transaction {leg['id']}",
                    lambda leg=leg: store.delete("transactions", leg["id"]),
                    undo=lambda leg=leg: store.insert("transactions", leg),
                )
                await saga.step(
                    f"reverse {amount} on account {leg['account_id']}",
                    lambda leg=leg, amount=amount: LedgerService.apply_delta(store, leg["account_id"], -amount),
                    undo=lambda leg=leg, amount=amount: LedgerService.apply_delta(store, leg["account_id"], amount),
                )

        if pair is None:
            logger.warning(f"Deleted transfer leg {tx_id} without a matching pair")
        return [leg["id"] for leg in legs]

    @staticmethod
    async def update_transfer(store: RecordStore, tx_id: str, amount=None, tx_date=None,
                              memo: str | None = None, cleared: bool | None = None) -> list[dict]:
        """
        Edit a transfer from either leg. `amount` is the positive size of the
        transfer; each leg keeps its direction. Date and memo are mirrored to
        the pair, `cleared` only applies to the leg being edited.
        """
        tx = await store.get("transactions", tx_id)
        if not is_transfer(tx):
            raise ValidationError("Transaction is not a transfer")
        pair = await TransferService.find_pair(store, tx)

        shared = {}
        if tx_date is not None:
            shared["date"] = parse_date(tx_date).isoformat()
        if memo is not None:
            shared["memo"] = memo.strip() or None
        new_size = _positive_amount(amount) if amount is not None else None

        plans = []
        for leg in [tx] + ([pair] if pair else []):
            old_amount = to_decimal(leg["amount"])
            changes = dict(shared)
            if new_size is not None:
                changes["amount"] = new_size if old_amount > ZERO else -new_size
            if cleared is not None and leg["id"] == tx_id:
                changes["cleared"] = cleared
            if changes:
                previous = {k: leg.get(k) for k in changes}
                plans.append((leg, changes, previous, to_decimal(changes.get("amount", old_amount)) - old_amount))

        updated = {}
        async with Saga(store, "update transfer").run() as saga:
            for leg, changes, previous, delta in plans:
                updated[leg["id"]] = await saga.step(
                    f"update transaction {leg['id']}",
                    lambda leg=leg, changes=changes: store.update("transactions", leg["id"], changes),
                    undo=lambda leg=leg, previous=previous: store.update("transactions", leg["id"], previous),
                )
                if delta != ZERO:
                    await saga.step(
                        f"adjust account {leg['account_id']} by {delta}",
                        lambda leg=leg, delta=delta: LedgerService.apply_delta(store, leg["account_id"], delta),
                        undo=lambda leg=leg, delta=delta: LedgerService.apply_delta(store, leg["account_id"], -delta),
                    )

        return [updated.get(leg["id"], leg) for leg in [tx] + ([pair] if pair else [])]
