"""
payee_service.py - Payees and learned auto-categorization
Transfer counter-parties are payees named "Transfer: <account>" and flagged
is_transfer, so a real payee that happens to share the name is never
mistaken for one. Payee -> category rules are learned from categorized
transactions and applied to new uncategorized ones.
"""

import re
from datetime import datetime, timezone

from errors import ValidationError
from record_store import RecordStore

TRANSFER_PREFIX = "Transfer: "

_SPACES = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Lowercase, trimmed, single-spaced. Key for payee rules."""
    return _SPACES.sub(" ", (name or "").strip().lower())


def transfer_payee_name(account_name: str) -> str:
    return f"{TRANSFER_PREFIX}{account_name}"


class PayeeService:
    @staticmethod
    async def list_payees(store: RecordStore, budget_id: str, include_transfer: bool = False) -> list[dict]:
        payees = await store.select("payees", {"budget_id": budget_id}, order_by="name")
        if include_transfer:
            return payees
        return [p for p in payees if not p.get("is_transfer")]

    @staticmethod
    async def get_or_create(store: RecordStore, budget_id: str, name: str) -> dict:
        """Regular payee by case-insensitive name, created when missing."""
        clean = _SPACES.sub(" ", (name or "").strip())
        if not clean:
            raise ValidationError("Payee name is required")
        key = normalize_name(clean)
        for payee in await store.select("payees", {"budget_id": budget_id, "is_transfer": False}):
            if normalize_name(payee["name"]) == key:
                return payee
        return await store.insert("payees", {"budget_id": budget_id, "name": clean, "is_transfer": False})

    @staticmethod
    async def get_or_create_transfer_payee(store: RecordStore, budget_id: str, account_name: str) -> dict:
        """Reuse the exact-name transfer payee for an account so repeated transfers share one row."""
        name = transfer_payee_name(account_name)
        existing = await store.select("payees", {"budget_id": budget_id, "name": name, "is_transfer": True})
        if existing:
            return existing[0]
        return await store.insert("payees", {"budget_id": budget_id, "name": name, "is_transfer": True})

    # ------------------------------------------------------------------
    @staticmethod
    async def suggest_category(store: RecordStore, budget_id: str, payee_name: str) -> str | None:
        key = normalize_name(payee_name)
        if not key:
            return None
        rules = await store.select("payee_category_rules", {"budget_id": budget_id, "payee_name": key})
        return rules[0]["category_id"] if rules else None

    @staticmethod
    async def learn_category(store: RecordStore, budget_id: str, payee_name: str, category_id: str) -> dict | None:
        """Remember that `payee_name` was categorized as `category_id`; bumps the usage count."""
        key = normalize_name(payee_name)
        if not key or not category_id:
            return None
        existing = await store.select("payee_category_rules", {"budget_id": budget_id, "payee_name": key})
        usage = 1
        if existing and existing[0]["category_id"] == category_id:
            usage = (existing[0].get("usage_count") or 0) + 1
        return await store.upsert("payee_category_rules", {
            "budget_id": budget_id,
            "payee_name": key,
            "category_id": category_id,
            "usage_count": usage,
            "last_used_at": datetime.now(timezone.utc).isoformat(),
        }, on_conflict=("budget_id", "payee_name"))
