"""
Error Taxonomy

Every failure the core can report is one of these exceptions.
Callers (the HTTP layer, a CLI, tests) catch them and render their own
messages; the structured attributes carry everything needed for that.

Raising any of them inside a unit of work aborts it: nothing is persisted.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID


class FinanceError(Exception):
    """Base exception for all transaction-core failures."""

    code = "FINANCE_ERROR"
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(FinanceError):
    """A field-level invariant was violated."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class InvalidStatusTransitionError(ValidationError):
    """Status flip that the lifecycle does not allow."""

    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        self.current = current
        self.requested = requested
        super().__init__(
            "status",
            message or f"Cannot move transaction from '{current}' to '{requested}'",
        )


class TransactionAlreadyCompletedError(InvalidStatusTransitionError):
    """Complete was called on a transaction that is already completed."""

    code = "TRANSACTION_ALREADY_COMPLETED"

    def __init__(self):
        super().__init__("completed", "completed", "Transaction is already completed")


class NotFoundError(FinanceError):
    """A transaction, account, category or settings record is missing."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Optional[object] = None):
        self.entity = entity
        self.entity_id = entity_id
        suffix = f" ({entity_id})" if entity_id is not None else ""
        super().__init__(f"{entity} not found{suffix}")


class UnauthorizedError(FinanceError):
    """The record exists but belongs to another user."""

    code = "UNAUTHORIZED"

    def __init__(self, entity: str, entity_id: object, user_id: str):
        self.entity = entity
        self.entity_id = entity_id
        self.user_id = user_id
        super().__init__(f"{entity} {entity_id} does not belong to user {user_id}")


class InactiveAccountError(FinanceError):
    """Balance-affecting operation against an inactive account."""

    code = "INACTIVE_ACCOUNT"

    def __init__(self, account_id: UUID):
        self.account_id = account_id
        super().__init__(f"Financial account {account_id} is inactive")


class InsufficientBalanceError(FinanceError):
    """Completing an expense would take the account below zero."""

    code = "INSUFFICIENT_BALANCE"

    def __init__(self, account_id: UUID, current: Decimal, requested: Decimal):
        self.account_id = account_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Insufficient balance: current {current:.2f}, requested {requested:.2f}"
        )


class BudgetExceededError(FinanceError):
    """The expense would push a bucket past the rejection threshold."""

    code = "BUDGET_EXCEEDED"

    def __init__(self, bucket: str, percentage: Decimal, message: str):
        self.bucket = bucket
        self.percentage = percentage
        super().__init__(message)


class StorageError(FinanceError):
    """The persistence backend failed."""

    code = "STORAGE_ERROR"


class ConcurrencyConflictError(StorageError):
    """Another unit of work changed a row this one read. Safe to retry."""

    code = "CONCURRENCY_CONFLICT"
    retryable = True

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"Concurrent modification of {entity} {entity_id}")
