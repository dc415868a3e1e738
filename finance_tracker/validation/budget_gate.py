"""
Budget Gate

DESIGN DECISION: The gate runs inside the unit of work, before anything
is written. It reads settings, categories and the current month's
transactions through the same repositories as the operation, so a
rejection aborts the whole operation and leaves no partial writes.

The budget arithmetic itself lives in BudgetService; the gate only
gathers the inputs and turns a rejection into BudgetExceededError.

Skipped entirely when:
- The transaction is not a despesa
- It has no category reference
- The user has no valid budget settings
"""

from datetime import datetime, tzinfo
from typing import Optional

from finance_tracker.errors import BudgetExceededError
from finance_tracker.models.budget import BudgetWarning
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.budget import BudgetService
from finance_tracker.services.storage.interface import Repositories


class BudgetGate:
    """Enforces the per-bucket expense policy for one transaction."""

    def __init__(
        self,
        budget_service: Optional[BudgetService] = None,
        timezone: Optional[tzinfo] = None,
    ):
        """
        Args:
            budget_service: Shared budget calculator
            timezone: Zone whose calendar month defines the budget period.
                      None keeps the zone of the `now` passed to check().
        """
        self._budget = budget_service or BudgetService()
        self._timezone = timezone

    def check(
        self,
        repos: Repositories,
        transaction: Transaction,
        now: datetime,
    ) -> Optional[BudgetWarning]:
        """
        Validate `transaction` as the expense it would become.

        The transaction's own stored version (when editing) is excluded
        from the amount already spent.

        Returns:
            A warning when accepted above the warning threshold, else None

        Raises:
            BudgetExceededError: When the bucket would pass the rejection threshold
        """
        if not transaction.is_despesa():
            return None

        category_ref = transaction.category_ref()
        if category_ref is None:
            return None

        settings = repos.settings.find_by_user_id(transaction.user_id)
        if not self._budget.has_valid_settings(settings):
            return None

        if self._timezone is not None:
            now = now.astimezone(self._timezone)
        period = self._budget.current_month_period(now)

        categories = repos.categories.find_by_user(transaction.user_id)
        spent_before = [
            existing
            for existing in repos.transactions.find_by_user_and_date_range(
                transaction.user_id, period.start, period.end
            )
            if existing.id != transaction.id
        ]

        result = self._budget.validate_expense(
            candidate_value=transaction.valor,
            category_ref=category_ref,
            settings=settings,
            period_transactions=spent_before,
            categories=categories,
            period=period,
        )

        if not result.accepted:
            raise BudgetExceededError(
                bucket=result.bucket,
                percentage=result.percentage_after,
                message=result.message,
            )

        return result.warning
