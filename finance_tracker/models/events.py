"""
Lifecycle Event Models

Every committed step of a transaction operation produces one structured
event, emitted through structlog. Events are log lines; they are not
stored and balances are never derived from them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_tracker.models.base import utcnow


class LifecycleEventType(str, Enum):
    """Types of events the transaction core emits."""
    # Transaction operations
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_REPLACED = "transaction_replaced"
    TRANSACTION_PATCHED = "transaction_patched"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_COMPLETED = "transaction_completed"

    # Balance reconciliation
    BALANCE_APPLIED = "balance_applied"
    BALANCE_REVERTED = "balance_reverted"
    BALANCE_SKIPPED = "balance_skipped"

    # Budget policy
    BUDGET_WARNING = "budget_warning"

    # Failures
    OPERATION_FAILED = "operation_failed"
    CONCURRENCY_RETRY = "concurrency_retry"


class LifecycleSeverity(str, Enum):
    """Severity level for lifecycle events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LifecycleEvent(BaseModel):
    """A single lifecycle event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=utcnow)

    event_type: LifecycleEventType
    severity: LifecycleSeverity = LifecycleSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    user_id: Optional[str] = None

    # All events of one operation share this
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


class LifecycleEventBuilder:
    """
    Helper class to build lifecycle events with common patterns.

    Usage:
        event = LifecycleEventBuilder.balance_applied(account_id, ...)
    """

    @staticmethod
    def transaction_event(
        event_type: LifecycleEventType,
        transaction_id: UUID,
        user_id: str,
        status: str,
        valor: Decimal,
        tipo: str,
        correlation_id: UUID,
    ) -> LifecycleEvent:
        action = event_type.value.removeprefix("transaction_")
        return LifecycleEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Transaction {action}: {tipo} {_money(valor)} ({status})",
            details={
                "status": status,
                "valor": _money(valor),
                "tipo": tipo,
            },
        )

    @staticmethod
    def balance_applied(
        account_id: UUID,
        transaction_id: UUID,
        tipo: str,
        valor: Decimal,
        saldo_atual: Decimal,
        correlation_id: UUID,
    ) -> LifecycleEvent:
        return LifecycleEvent(
            event_type=LifecycleEventType.BALANCE_APPLIED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Applied {tipo} {_money(valor)} to account",
            details={
                "transaction_id": str(transaction_id),
                "tipo": tipo,
                "valor": _money(valor),
                "saldo_atual": _money(saldo_atual),
            },
        )

    @staticmethod
    def balance_reverted(
        account_id: UUID,
        transaction_id: UUID,
        tipo: str,
        valor: Decimal,
        saldo_atual: Decimal,
        correlation_id: UUID,
    ) -> LifecycleEvent:
        return LifecycleEvent(
            event_type=LifecycleEventType.BALANCE_REVERTED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Reverted {tipo} {_money(valor)} on account",
            details={
                "transaction_id": str(transaction_id),
                "tipo": tipo,
                "valor": _money(valor),
                "saldo_atual": _money(saldo_atual),
            },
        )

    @staticmethod
    def balance_skipped(
        account_id: UUID,
        transaction_id: UUID,
        reason: str,
        correlation_id: UUID,
    ) -> LifecycleEvent:
        return LifecycleEvent(
            event_type=LifecycleEventType.BALANCE_SKIPPED,
            severity=LifecycleSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Balance not changed: {reason}",
            details={
                "transaction_id": str(transaction_id),
                "reason": reason,
            },
        )

    @staticmethod
    def budget_warning(
        transaction_id: UUID,
        user_id: str,
        bucket: str,
        percentage: Decimal,
        correlation_id: UUID,
    ) -> LifecycleEvent:
        return LifecycleEvent(
            event_type=LifecycleEventType.BUDGET_WARNING,
            severity=LifecycleSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Bucket {bucket} at {percentage}% after this expense",
            details={
                "bucket": bucket,
                "percentage": str(percentage),
            },
        )

    @staticmethod
    def operation_failed(
        operation: str,
        user_id: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
        transaction_id: Optional[UUID] = None,
    ) -> LifecycleEvent:
        return LifecycleEvent(
            event_type=LifecycleEventType.OPERATION_FAILED,
            severity=LifecycleSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{operation} rejected: {error_code}",
            error_code=error_code,
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def concurrency_retry(
        operation: str,
        attempt: int,
        error_message: str,
        correlation_id: UUID,
    ) -> LifecycleEvent:
        return LifecycleEvent(
            event_type=LifecycleEventType.CONCURRENCY_RETRY,
            severity=LifecycleSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{operation} hit a concurrent update (attempt {attempt})",
            error_message=error_message,
            details={
                "operation": operation,
                "attempt": attempt,
            },
        )
