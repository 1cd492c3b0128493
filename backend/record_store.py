"""
record_store.py - Storage boundary for the budgeting core
Every service reads and writes through a RecordStore. Rows travel as plain
dicts: ids are strings, dates ISO `YYYY-MM-DD` strings, amounts Decimal.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from decimal import Decimal

from config import STORAGE_BACKEND


class RecordStore(ABC):
    """Abstract async record store. Implementations: SqlRecordStore, SupabaseRecordStore."""

    # True when atomic() really groups statements into one database transaction
    supports_atomic: bool = False

    @abstractmethod
    async def select(self, table: str, filters: dict | None = None, *, in_: dict | None = None,
                     gte: dict | None = None, lte: dict | None = None,
                     order_by: str | None = None, descending: bool = False) -> list[dict]:
        """
        Rows matching every filter.

        Args:
            filters: column -> value equality (None matches NULL).
            in_: column -> list of accepted values.
            gte / lte: column -> inclusive lower / upper bound.
        """
        ...

    @abstractmethod
    async def get(self, table: str, record_id: str) -> dict:
        """Point lookup by id. Raises NotFoundError."""
        ...

    @abstractmethod
    async def insert(self, table: str, data: dict) -> dict:
        ...

    @abstractmethod
    async def insert_many(self, table: str, rows: list[dict]) -> list[dict]:
        """Insert several rows in a single statement."""
        ...

    @abstractmethod
    async def update(self, table: str, record_id: str, data: dict) -> dict:
        """Update one row by id. Raises NotFoundError."""
        ...

    @abstractmethod
    async def update_where(self, table: str, filters: dict, data: dict) -> int:
        """Update every row matching `filters`, returns the number of rows touched."""
        ...

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> None:
        """Delete one row by id. Raises NotFoundError."""
        ...

    @abstractmethod
    async def delete_where(self, table: str, filters: dict) -> int:
        ...

    @abstractmethod
    async def upsert(self, table: str, data: dict, on_conflict: tuple[str, ...]) -> dict:
        """Insert, or overwrite the row that matches `data` on the `on_conflict` columns."""
        ...

    @abstractmethod
    async def increment(self, table: str, record_id: str, column: str, delta: Decimal) -> Decimal:
        """Atomically add `delta` to a numeric column and return the new value."""
        ...

    @asynccontextmanager
    async def atomic(self):
        """Group the enclosed calls into one unit of work where the backend allows it."""
        yield self

    async def close(self):
        pass


def create_store(backend: str = STORAGE_BACKEND) -> RecordStore:
    """Build the store configured by STORAGE_BACKEND."""
    if backend == "supabase":
        from supabase_rest import SupabaseRecordStore
        return SupabaseRecordStore.from_config()
    if backend == "sql":
        from database import SessionLocal
        from sql_store import SqlRecordStore
        return SqlRecordStore(SessionLocal())
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")


async def get_store():
    """FastAPI dependency - yields a record store and closes it after the request."""
    store = create_store()
    try:
        yield store
    finally:
        await store.close()
