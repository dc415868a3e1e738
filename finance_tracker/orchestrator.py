"""
Transaction Lifecycle Orchestrators

This module ties the entities, the budget gate and balance
reconciliation together into the five lifecycle operations:
1. Create   (optionally completing the transaction at once)
2. Replace  (full update)
3. Patch    (partial update)
4. Delete
5. Complete

DESIGN DECISION: Every operation is one unit of work.
- The transaction write and every account write commit together or not at all
- Any failure (validation, budget, funds, concurrency) leaves storage untouched
- Lifecycle events are logged only after the commit succeeds

Concurrent updates of the same rows are detected by the unit of work at
commit time; the operation is then retried from scratch (fresh reads)
with exponential backoff, as configured.
"""

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Callable, Optional, TypeVar
from uuid import UUID

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.config import ConcurrencySettings, get_settings
from finance_tracker.errors import (
    ConcurrencyConflictError,
    FinanceError,
    NotFoundError,
    TransactionAlreadyCompletedError,
    UnauthorizedError,
    ValidationError,
)
from finance_tracker.events import LifecycleLogger, configure_logging, create_correlation_id
from finance_tracker.models.base import utcnow
from finance_tracker.models.budget import BudgetReport, BudgetWarning
from finance_tracker.models.events import (
    LifecycleEvent,
    LifecycleEventBuilder,
    LifecycleEventType,
)
from finance_tracker.models.transaction import (
    Transaction,
    TransactionCreate,
    TransactionPatch,
    TransactionReplace,
    TransactionResult,
    TransactionStatus,
)
from finance_tracker.queries import BudgetQueryExecutor
from finance_tracker.services.budget import BudgetService
from finance_tracker.services.reconciliation import BalanceReconciliation
from finance_tracker.services.storage import (
    InMemoryUnitOfWork,
    Repositories,
    UnitOfWork,
)
from finance_tracker.validation import BudgetGate


T = TypeVar("T")


@dataclass
class OperationContext:
    """State of one attempt of one operation."""

    user_id: str
    correlation_id: UUID
    now: datetime
    reconciliation: BalanceReconciliation
    events: list[LifecycleEvent] = field(default_factory=list)

    def all_events(self) -> list[LifecycleEvent]:
        return self.reconciliation.events + self.events


class TransactionFlow:
    """
    Shared machinery of the lifecycle operations.

    Subclasses implement the operation body; this class wraps it in a
    unit of work, retries concurrency conflicts and logs the outcome.
    """

    operation = "transaction"

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        budget_gate: Optional[BudgetGate] = None,
        lifecycle_logger: Optional[LifecycleLogger] = None,
        concurrency: Optional[ConcurrencySettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._uow = unit_of_work
        self._budget_gate = budget_gate or BudgetGate()
        self._logger = lifecycle_logger or LifecycleLogger()
        self._concurrency = concurrency or get_settings().concurrency
        self._clock = clock

    def _run(
        self,
        user_id: str,
        body: Callable[[Repositories, OperationContext], T],
        transaction_id: Optional[UUID] = None,
    ) -> T:
        """
        Run `body` atomically, retrying on concurrency conflicts.

        Raises:
            FinanceError: Whatever the body raised, or
                ConcurrencyConflictError once attempts are exhausted
        """
        correlation_id = create_correlation_id()

        retrying = Retrying(
            retry=retry_if_exception_type(ConcurrencyConflictError),
            stop=stop_after_attempt(self._concurrency.max_attempts),
            wait=wait_exponential(
                multiplier=self._concurrency.wait_multiplier,
                max=self._concurrency.wait_max,
            ),
            before_sleep=self._log_retry(correlation_id),
            reraise=True,
        )

        try:
            result, events = retrying(self._attempt, user_id, correlation_id, body)
        except FinanceError as e:
            self._logger.log(
                LifecycleEventBuilder.operation_failed(
                    operation=self.operation,
                    user_id=user_id,
                    error_code=e.code,
                    error_message=e.message,
                    correlation_id=correlation_id,
                    transaction_id=transaction_id,
                )
            )
            raise

        self._logger.log_all(events)
        return result

    def _attempt(
        self,
        user_id: str,
        correlation_id: UUID,
        body: Callable[[Repositories, OperationContext], T],
    ) -> tuple[T, list[LifecycleEvent]]:
        contexts: list[OperationContext] = []

        def unit(repos: Repositories) -> T:
            context = OperationContext(
                user_id=user_id,
                correlation_id=correlation_id,
                now=self._clock(),
                reconciliation=BalanceReconciliation(
                    repos.accounts, user_id, correlation_id
                ),
            )
            contexts.append(context)
            result = body(repos, context)
            context.reconciliation.flush()
            return result

        result = self._uow.run_atomic(unit)
        return result, contexts[-1].all_events()

    def _log_retry(self, correlation_id: UUID) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            self._logger.log(
                LifecycleEventBuilder.concurrency_retry(
                    operation=self.operation,
                    attempt=retry_state.attempt_number,
                    error_message=str(error),
                    correlation_id=correlation_id,
                )
            )
        return before_sleep

    # -------------------------------------------------------------------------
    # Helpers for subclasses
    # -------------------------------------------------------------------------

    @staticmethod
    def _load_owned(repos: Repositories, user_id: str, transaction_id: UUID) -> Transaction:
        transaction = repos.transactions.find_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction", transaction_id)
        if not transaction.belongs_to_user(user_id):
            raise UnauthorizedError("Transaction", transaction_id, user_id)
        return transaction

    def _check_budget(
        self,
        repos: Repositories,
        context: OperationContext,
        transaction: Transaction,
    ) -> Optional[BudgetWarning]:
        warning = self._budget_gate.check(repos, transaction, context.now)
        if warning is not None:
            context.events.append(
                LifecycleEventBuilder.budget_warning(
                    transaction_id=transaction.id,
                    user_id=context.user_id,
                    bucket=warning.bucket,
                    percentage=warning.percentage,
                    correlation_id=context.correlation_id,
                )
            )
        return warning

    @staticmethod
    def _record(
        context: OperationContext,
        event_type: LifecycleEventType,
        transaction: Transaction,
    ) -> None:
        context.events.append(
            LifecycleEventBuilder.transaction_event(
                event_type=event_type,
                transaction_id=transaction.id,
                user_id=context.user_id,
                status=transaction.status.value,
                valor=transaction.valor,
                tipo=transaction.tipo.value,
                correlation_id=context.correlation_id,
            )
        )


class CreateTransactionFlow(TransactionFlow):
    """
    Creates a transaction.

    Flow:
    1. Build and validate a pending transaction
    2. Check the referenced account (exists, owned, active)
    3. Budget gate
    4. If status=completed was requested: apply the balance effect, mark completed
    5. Persist transaction and account
    """

    operation = "create_transaction"

    def execute(self, user_id: str, data: TransactionCreate) -> TransactionResult:
        def body(repos: Repositories, context: OperationContext) -> TransactionResult:
            transaction = Transaction.create(
                **data.model_dump(exclude={"status"}),
                user_id=user_id,
            )

            if transaction.conta_financeira_id is not None:
                context.reconciliation.require_usable(transaction.conta_financeira_id)

            warning = self._check_budget(repos, context, transaction)

            if data.status == TransactionStatus.COMPLETED:
                context.reconciliation.apply(transaction)
                transaction.mark_completed()

            repos.transactions.create(transaction)
            self._record(context, LifecycleEventType.TRANSACTION_CREATED, transaction)
            return TransactionResult(transaction=transaction, budget_warning=warning)

        return self._run(user_id, body)


class ReplaceTransactionFlow(TransactionFlow):
    """
    Overwrites every field of a transaction.

    A completed transaction's old effect is reverted on its old account;
    if the result is completed, the new effect is applied on the new
    account. Both happen in the same unit of work.
    """

    operation = "replace_transaction"

    def execute(
        self,
        user_id: str,
        transaction_id: UUID,
        data: TransactionReplace,
    ) -> TransactionResult:
        def body(repos: Repositories, context: OperationContext) -> TransactionResult:
            transaction = self._load_owned(repos, user_id, transaction_id)
            before = transaction.model_copy()

            transaction.update_fields(**data.model_dump(exclude={"status"}))
            new_status = data.status or before.status

            new_account_id = transaction.conta_financeira_id
            if new_account_id is not None and new_account_id != before.conta_financeira_id:
                context.reconciliation.require_usable(new_account_id)

            warning = self._check_budget(repos, context, transaction)

            if before.is_completed():
                context.reconciliation.revert(before)
            transaction.update_status(new_status)
            if transaction.is_completed():
                context.reconciliation.apply(transaction)

            repos.transactions.update(transaction)
            self._record(context, LifecycleEventType.TRANSACTION_REPLACED, transaction)
            return TransactionResult(transaction=transaction, budget_warning=warning)

        return self._run(user_id, body, transaction_id)


class PatchTransactionFlow(TransactionFlow):
    """
    Updates only the fields present in the patch.

    Status matrix (old -> new):
    - pending   -> pending    no balance change
    - pending   -> completed  apply
    - completed -> pending    revert
    - completed -> completed  revert old values, apply new values

    Changing tipo is rejected while the transaction is completed.
    """

    operation = "patch_transaction"

    def execute(
        self,
        user_id: str,
        transaction_id: UUID,
        data: TransactionPatch,
    ) -> TransactionResult:
        def body(repos: Repositories, context: OperationContext) -> TransactionResult:
            transaction = self._load_owned(repos, user_id, transaction_id)
            before = transaction.model_copy()

            changes = data.provided()
            new_status = changes.pop("status", None) or before.status

            if (
                "tipo" in changes
                and changes["tipo"] != before.tipo
                and before.is_completed()
            ):
                raise ValidationError(
                    "tipo",
                    "tipo: cannot change the type of a completed transaction",
                )

            transaction.update_fields(**changes)

            new_account_id = transaction.conta_financeira_id
            if new_account_id is not None and new_account_id != before.conta_financeira_id:
                context.reconciliation.require_usable(new_account_id)

            warning = self._check_budget(repos, context, transaction)

            if before.is_completed():
                context.reconciliation.revert(before)
            transaction.update_status(new_status)
            if transaction.is_completed():
                context.reconciliation.apply(transaction)

            repos.transactions.update(transaction)
            self._record(context, LifecycleEventType.TRANSACTION_PATCHED, transaction)
            return TransactionResult(transaction=transaction, budget_warning=warning)

        return self._run(user_id, body, transaction_id)


class DeleteTransactionFlow(TransactionFlow):
    """Reverts a completed transaction's effect, then hard-deletes it."""

    operation = "delete_transaction"

    def execute(self, user_id: str, transaction_id: UUID) -> None:
        def body(repos: Repositories, context: OperationContext) -> None:
            transaction = self._load_owned(repos, user_id, transaction_id)

            if transaction.is_completed():
                context.reconciliation.revert(transaction)

            repos.transactions.delete(transaction_id)
            self._record(context, LifecycleEventType.TRANSACTION_DELETED, transaction)

        self._run(user_id, body, transaction_id)


class CompleteTransactionFlow(TransactionFlow):
    """Moves a pending transaction to completed, applying its balance effect."""

    operation = "complete_transaction"

    def execute(self, user_id: str, transaction_id: UUID) -> TransactionResult:
        def body(repos: Repositories, context: OperationContext) -> TransactionResult:
            transaction = self._load_owned(repos, user_id, transaction_id)
            if transaction.is_completed():
                raise TransactionAlreadyCompletedError()

            context.reconciliation.apply(transaction)
            transaction.mark_completed()

            repos.transactions.update(transaction)
            self._record(context, LifecycleEventType.TRANSACTION_COMPLETED, transaction)
            return TransactionResult(transaction=transaction)

        return self._run(user_id, body, transaction_id)


class TransactionService:
    """
    Entry point for callers (HTTP handlers, CLIs, jobs).

    Every method is scoped by user_id and either returns its result or
    raises a FinanceError subclass.
    """

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        budget_service: Optional[BudgetService] = None,
        lifecycle_logger: Optional[LifecycleLogger] = None,
        concurrency: Optional[ConcurrencySettings] = None,
        timezone: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        budget_service = budget_service or BudgetService()
        lifecycle_logger = lifecycle_logger or LifecycleLogger()
        budget_gate = BudgetGate(budget_service, timezone)

        flow_args = dict(
            unit_of_work=unit_of_work,
            budget_gate=budget_gate,
            lifecycle_logger=lifecycle_logger,
            concurrency=concurrency,
            clock=clock,
        )
        self._create = CreateTransactionFlow(**flow_args)
        self._replace = ReplaceTransactionFlow(**flow_args)
        self._patch = PatchTransactionFlow(**flow_args)
        self._delete = DeleteTransactionFlow(**flow_args)
        self._complete = CompleteTransactionFlow(**flow_args)
        self._budget_query = BudgetQueryExecutor(
            unit_of_work, budget_service, timezone, clock
        )

    def create_transaction(self, user_id: str, data: TransactionCreate) -> TransactionResult:
        return self._create.execute(user_id, data)

    def replace_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
        data: TransactionReplace,
    ) -> TransactionResult:
        return self._replace.execute(user_id, transaction_id, data)

    def patch_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
        data: TransactionPatch,
    ) -> TransactionResult:
        return self._patch.execute(user_id, transaction_id, data)

    def delete_transaction(self, user_id: str, transaction_id: UUID) -> None:
        self._delete.execute(user_id, transaction_id)

    def complete_transaction(self, user_id: str, transaction_id: UUID) -> TransactionResult:
        return self._complete.execute(user_id, transaction_id)

    def get_user_budget(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> BudgetReport:
        return self._budget_query.get_user_budget(user_id, start, end)


def create_app_components(
    unit_of_work: Optional[UnitOfWork] = None,
    setup_logging: bool = True,
) -> TransactionService:
    """
    Factory function to create the transaction service from settings.

    Args:
        unit_of_work: Storage backend. Defaults to a fresh in-memory store.
        setup_logging: Whether to configure structlog from settings.

    Returns:
        The wired TransactionService
    """
    settings = get_settings()
    if setup_logging:
        configure_logging(settings.logging)

    return TransactionService(
        unit_of_work=unit_of_work or InMemoryUnitOfWork(),
        concurrency=settings.concurrency,
        timezone=settings.app.tzinfo,
    )
