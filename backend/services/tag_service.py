"""
tag_service.py - Tags and transaction tags
"""

from errors import ConflictError, ValidationError
from record_store import RecordStore


class TagService:
    @staticmethod
    async def list_tags(store: RecordStore, budget_id: str) -> list[dict]:
        return await store.select("tags", {"budget_id": budget_id}, order_by="name")

    @staticmethod
    async def create_tag(store: RecordStore, budget_id: str, name: str, color: str | None = None) -> dict:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Tag name is required")
        for tag in await store.select("tags", {"budget_id": budget_id}):
            if tag["name"].lower() == name.lower():
                raise ConflictError(f"Tag '{name}' already exists")
        data = {"budget_id": budget_id, "name": name}
        if color:
            data["color"] = color
        return await store.insert("tags", data)

    @staticmethod
    async def update_tag(store: RecordStore, tag_id: str, data: dict) -> dict:
        changes = {k: v for k, v in data.items() if k in ("name", "color") and v is not None}
        if not changes:
            raise ValidationError("Nothing to update")
        return await store.update("tags", tag_id, changes)

    @staticmethod
    async def delete_tag(store: RecordStore, tag_id: str) -> None:
        await store.get("tags", tag_id)
        async with store.atomic():
            await store.delete_where("transaction_tags", {"tag_id": tag_id})
            await store.delete("tags", tag_id)

    # ------------------------------------------------------------------
    @staticmethod
    async def attach(store: RecordStore, transaction_id: str, tag_id: str) -> dict:
        await store.get("transactions", transaction_id)
        await store.get("tags", tag_id)
        link = {"transaction_id": transaction_id, "tag_id": tag_id}
        if await store.select("transaction_tags", link):
            return link
        await store.insert("transaction_tags", link)
        return link

    @staticmethod
    async def detach(store: RecordStore, transaction_id: str, tag_id: str) -> int:
        return await store.delete_where("transaction_tags", {"transaction_id": transaction_id, "tag_id": tag_id})

    @staticmethod
    async def tags_for_transaction(store: RecordStore, transaction_id: str) -> list[dict]:
        links = await store.select("transaction_tags", {"transaction_id": transaction_id})
        if not links:
            return []
        return await store.select("tags", in_={"id": [link["tag_id"] for link in links]}, order_by="name")
