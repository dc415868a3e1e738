"""
Balance Reconciliation

Applies and reverts a transaction's effect on its account:

    apply(receita)   -> credit        revert(receita) -> debit
    apply(despesa)   -> debit         revert(despesa) -> credit
    transferencia    -> no effect (recorded as skipped)

One instance lives for one unit of work. Accounts are loaded once and
kept in an identity map, so a revert followed by an apply on the same
account sees the reverted balance. flush() writes every touched account
back through the repository; the unit of work commits them together
with the transaction.
"""

from typing import Optional
from uuid import UUID

from finance_tracker.errors import (
    InactiveAccountError,
    InsufficientBalanceError,
    NotFoundError,
)
from finance_tracker.models.account import FinancialAccount
from finance_tracker.models.events import LifecycleEvent, LifecycleEventBuilder
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.storage.interface import FinancialAccountRepository


class BalanceReconciliation:
    """Balance side effects of transaction lifecycle steps."""

    def __init__(
        self,
        accounts: FinancialAccountRepository,
        user_id: str,
        correlation_id: UUID,
    ):
        self._accounts = accounts
        self._user_id = user_id
        self._correlation_id = correlation_id
        self._loaded: dict[UUID, Optional[FinancialAccount]] = {}
        self._touched: list[UUID] = []
        self.events: list[LifecycleEvent] = []

    def load(self, account_id: UUID) -> Optional[FinancialAccount]:
        """The user's account, loaded at most once per unit of work."""
        if account_id not in self._loaded:
            self._loaded[account_id] = self._accounts.find_by_user_and_id(
                self._user_id, account_id
            )
        return self._loaded[account_id]

    def require_usable(self, account_id: UUID) -> FinancialAccount:
        """
        Account that a transaction may be booked against.

        Raises:
            NotFoundError: If missing or owned by another user
            InactiveAccountError: If deactivated
        """
        account = self.load(account_id)
        if account is None:
            raise NotFoundError("FinancialAccount", account_id)
        if not account.is_active():
            raise InactiveAccountError(account_id)
        return account

    def apply(self, transaction: Transaction) -> None:
        """
        Book a transaction's effect on its account.

        Raises:
            NotFoundError, InactiveAccountError: See require_usable
            InsufficientBalanceError: If a despesa exceeds saldo_atual
        """
        account_id = transaction.conta_financeira_id
        if account_id is None:
            return

        account = self.require_usable(account_id)

        if transaction.is_transferencia():
            self._skip(account_id, transaction.id, "transferencia has no balance effect")
            return

        if transaction.is_despesa():
            if not account.has_sufficient_balance(transaction.valor):
                raise InsufficientBalanceError(
                    account_id, account.saldo_atual, transaction.valor
                )
            account.debit(transaction.valor)
        else:
            account.credit(transaction.valor)

        self._touch(account_id)
        self.events.append(
            LifecycleEventBuilder.balance_applied(
                account_id=account_id,
                transaction_id=transaction.id,
                tipo=transaction.tipo.value,
                valor=transaction.valor,
                saldo_atual=account.saldo_atual,
                correlation_id=self._correlation_id,
            )
        )

    def revert(self, snapshot: Transaction) -> None:
        """
        Undo the effect booked for `snapshot`.

        The snapshot must hold the values that were applied (take it
        before mutating the transaction). Inactive accounts are still
        reverted; a vanished account is skipped.
        """
        account_id = snapshot.conta_financeira_id
        if account_id is None:
            return

        account = self.load(account_id)
        if account is None:
            self._skip(account_id, snapshot.id, "account no longer exists")
            return

        if snapshot.is_transferencia():
            self._skip(account_id, snapshot.id, "transferencia has no balance effect")
            return

        if snapshot.is_despesa():
            account.credit(snapshot.valor)
        else:
            account.debit(snapshot.valor)

        self._touch(account_id)
        self.events.append(
            LifecycleEventBuilder.balance_reverted(
                account_id=account_id,
                transaction_id=snapshot.id,
                tipo=snapshot.tipo.value,
                valor=snapshot.valor,
                saldo_atual=account.saldo_atual,
                correlation_id=self._correlation_id,
            )
        )

    def flush(self) -> None:
        """Persist every account whose balance changed."""
        for account_id in self._touched:
            self._accounts.update(self._loaded[account_id])

    def _touch(self, account_id: UUID) -> None:
        if account_id not in self._touched:
            self._touched.append(account_id)

    def _skip(self, account_id: UUID, transaction_id: UUID, reason: str) -> None:
        self.events.append(
            LifecycleEventBuilder.balance_skipped(
                account_id=account_id,
                transaction_id=transaction_id,
                reason=reason,
                correlation_id=self._correlation_id,
            )
        )
