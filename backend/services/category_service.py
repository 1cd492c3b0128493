"""
category_service.py - Category groups and categories
Deleting a category leaves its transactions in place as uncategorized and
drops the category's payee rules and monthly rows.
"""

import logging

from errors import ValidationError
from models.category import TARGET_TYPES
from money import to_decimal
from record_store import RecordStore
from services.period_service import parse_date

logger = logging.getLogger(__name__)

GROUP_FIELDS = ("name", "is_hidden", "sort_order")
CATEGORY_FIELDS = ("name", "category_group_id", "target_type", "target_amount", "target_date",
                   "is_hidden", "sort_order", "note")


def _clean_category(data: dict) -> dict:
    clean = {k: v for k, v in data.items() if k in CATEGORY_FIELDS}
    if "name" in clean:
        clean["name"] = (clean["name"] or "").strip()
        if not clean["name"]:
            raise ValidationError("Category name is required")
    if clean.get("target_type") is not None and clean["target_type"] not in TARGET_TYPES:
        raise ValidationError(f"target_type must be one of {', '.join(TARGET_TYPES)}")
    if clean.get("target_amount") is not None:
        try:
            clean["target_amount"] = to_decimal(clean["target_amount"])
        except ValueError as e:
            raise ValidationError(str(e)) from e
    if clean.get("target_date") is not None:
        clean["target_date"] = parse_date(clean["target_date"]).isoformat()
    return clean


class CategoryService:
    @staticmethod
    async def list_groups(store: RecordStore, budget_id: str) -> list[dict]:
        """Groups with their categories nested, both in sort order."""
        groups = await store.select("category_groups", {"budget_id": budget_id}, order_by="sort_order")
        if not groups:
            return []
        categories = await store.select("categories", in_={"category_group_id": [g["id"] for g in groups]},
                                        order_by="sort_order")
        for g in groups:
            g["categories"] = [c for c in categories if c["category_group_id"] == g["id"]]
        return groups

    @staticmethod
    async def create_group(store: RecordStore, budget_id: str, name: str) -> dict:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Group name is required")
        await store.get("budgets", budget_id)
        existing = await store.select("category_groups", {"budget_id": budget_id})
        return await store.insert("category_groups", {
            "budget_id": budget_id,
            "name": name,
            "sort_order": len(existing),
        })

    @staticmethod
    async def update_group(store: RecordStore, group_id: str, data: dict) -> dict:
        changes = {k: v for k, v in data.items() if k in GROUP_FIELDS}
        if not changes:
            raise ValidationError("Nothing to update")
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("Group name is required")
        return await store.update("category_groups", group_id, changes)

    @staticmethod
    async def delete_group(store: RecordStore, group_id: str) -> int:
        """Delete a group and every category in it. Returns the number of categories removed."""
        await store.get("category_groups", group_id)
        categories = await store.select("categories", {"category_group_id": group_id})
        for c in categories:
            await CategoryService.delete_category(store, c["id"])
        await store.delete("category_groups", group_id)
        return len(categories)

    # ------------------------------------------------------------------
    @staticmethod
    async def create_category(store: RecordStore, group_id: str, data: dict) -> dict:
        clean = _clean_category({**data, "name": data.get("name")})
        group = await store.get("category_groups", group_id)
        existing = await store.select("categories", {"category_group_id": group["id"]})
        clean.update({"category_group_id": group["id"], "sort_order": clean.get("sort_order", len(existing))})
        return await store.insert("categories", clean)

    @staticmethod
    async def update_category(store: RecordStore, category_id: str, data: dict) -> dict:
        clean = _clean_category(data)
        if not clean:
            raise ValidationError("Nothing to update")
        category = await store.get("categories", category_id)
        if "category_group_id" in clean and clean["category_group_id"] != category["category_group_id"]:
            old_group = await store.get("category_groups", category["category_group_id"])
            new_group = await store.get("category_groups", clean["category_group_id"])
            if new_group["budget_id"] != old_group["budget_id"]:
                raise ValidationError("Cannot move a category to another budget")
        return await store.update("categories", category_id, clean)

    @staticmethod
    async def delete_category(store: RecordStore, category_id: str) -> int:
        """Orphan the category's transactions to uncategorized, then delete it. Returns the orphan count."""
        await store.get("categories", category_id)
        async with store.atomic():
            orphaned = await store.update_where("transactions", {"category_id": category_id}, {"category_id": None})
            await store.delete_where("payee_category_rules", {"category_id": category_id})
            await store.delete_where("monthly_budgets", {"category_id": category_id})
            await store.delete("categories", category_id)
        logger.info(f"Deleted category {category_id}, {orphaned} transaction(s) now uncategorized")
        return orphaned
