"""
errors.py - Error taxonomy shared by the store, services and routes.
Services raise these; main.py maps each kind onto an HTTP status.
"""


class BudgetError(Exception):
    """Base class for every error the budgeting core raises on purpose."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "detail": self.message}


class ValidationError(BudgetError):
    """Bad input, rejected before any store call."""

    status_code = 400


class NotFoundError(BudgetError):
    """A referenced record does not exist."""

    status_code = 404

    def __init__(self, table: str, record_id=None, message: str | None = None):
        self.table = table
        self.record_id = record_id
        super().__init__(message or f"{table} record {record_id} not found")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"table": self.table, "id": self.record_id})
        return data


class ConflictError(BudgetError):
    """The request is valid but clashes with existing state."""

    status_code = 409


class StoreError(BudgetError):
    """The record store failed or timed out for a reason other than not-found."""

    status_code = 502


class PartialFailureError(BudgetError):
    """
    A multi-step operation failed after some of its steps were applied.

    `compensated` is True when every applied step was reversed, so the
    balance ledger is intact. False means the reversal itself failed and
    `pending` lists the steps still applied.
    """

    status_code = 500

    def __init__(self, operation: str, message: str, completed: list[str],
                 compensated: bool, pending: list[str] | None = None):
        self.operation = operation
        self.completed = completed
        self.compensated = compensated
        self.pending = pending or []
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "operation": self.operation,
            "completed_steps": self.completed,
            "compensated": self.compensated,
            "pending_steps": self.pending,
        })
        return data
