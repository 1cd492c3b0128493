"""
saga.py - Multi-step writes with compensation
Steps run inside store.atomic(). When the store commits atomically a failure
simply rolls everything back. Otherwise each completed step's undo runs in
reverse order and the caller gets a PartialFailureError saying whether the
reversal fully succeeded.
"""

import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable

from errors import PartialFailureError
from record_store import RecordStore

logger = logging.getLogger(__name__)


class Saga:
    def __init__(self, store: RecordStore, operation: str):
        self.store = store
        self.operation = operation
        self.completed: list[tuple[str, Callable[[], Awaitable] | None]] = []

    async def step(self, name: str, action: Callable[[], Awaitable], undo: Callable[[], Awaitable] | None = None):
        """Run `action()`; remember `undo` once it succeeded."""
        result = await action()
        self.completed.append((name, undo))
        return result

    async def compensate(self, exc: Exception):
        """Reverse completed steps, then raise. Never returns."""
        if self.store.supports_atomic or not self.completed:
            # atomic stores roll back on their own; with nothing applied there is nothing to undo
            raise exc

        names = [name for name, _ in self.completed]
        pending = []
        for name, undo in reversed(self.completed):
            if undo is None:
                continue
            try:
                await undo()
                logger.warning(f"{self.operation}: reversed '{name}' after failure: {exc}")
            except Exception as undo_exc:
                pending.append(name)
                logger.error(f"{self.operation}: could not reverse '{name}': {undo_exc}")

        if pending:
            logger.error(
                f"{self.operation}: ledger invariant violated, steps still applied: {', '.join(pending)}",
                extra={"meta": {"operation": self.operation, "completed": names, "pending": pending}},
            )
            message = f"{self.operation} failed and could not be fully reversed: {exc}"
        else:
            message = f"{self.operation} failed after {len(names)} step(s) and was reversed: {exc}"
        raise PartialFailureError(self.operation, message, completed=names,
                                  compensated=not pending, pending=pending) from exc

    @asynccontextmanager
    async def run(self):
        async with self.store.atomic():
            try:
                yield self
            except Exception as exc:
                await self.compensate(exc)
