"""
Budget Report Query

Read-only view of a user's budget for a period: per-bucket budget,
spent, remaining and usage. Runs through the unit of work like the
lifecycle operations, but never writes.

Users without valid settings get an all-zero report and a message,
not an error.
"""

from datetime import datetime, tzinfo
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from finance_tracker.errors import ValidationError
from finance_tracker.models.base import as_aware, to_domain_error, utcnow
from finance_tracker.models.budget import BudgetPeriod, BudgetReport
from finance_tracker.services.budget import BudgetService
from finance_tracker.services.storage.interface import Repositories, UnitOfWork


NO_SETTINGS_MESSAGE = (
    "Budget settings not configured. Set a salary and the "
    "necessidades / desejos / futuro percentages to see your budget."
)


class BudgetQueryExecutor:
    """Builds budget reports from stored data."""

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        budget_service: Optional[BudgetService] = None,
        timezone: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._uow = unit_of_work
        self._budget = budget_service or BudgetService()
        self._timezone = timezone
        self._clock = clock

    def get_user_budget(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> BudgetReport:
        """
        Budget report for [start, end], or the current month if neither is given.

        Raises:
            ValidationError: If only one bound is given or end < start
        """
        period = self._resolve_period(start, end)

        def read(repos: Repositories) -> BudgetReport:
            settings = repos.settings.find_by_user_id(user_id)
            if not self._budget.has_valid_settings(settings):
                return BudgetReport(
                    period=period,
                    budget=self._budget.empty_budget(),
                    has_valid_settings=False,
                    message=NO_SETTINGS_MESSAGE,
                )

            transactions = repos.transactions.find_by_user_and_date_range(
                user_id, period.start, period.end
            )
            categories = repos.categories.find_by_user(user_id)
            return BudgetReport(
                period=period,
                budget=self._budget.calculate_budget(
                    settings, transactions, categories, period
                ),
                has_valid_settings=True,
            )

        return self._uow.run_atomic(read)

    def _resolve_period(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> BudgetPeriod:
        if start is None and end is None:
            now = self._clock()
            if self._timezone is not None:
                now = now.astimezone(self._timezone)
            return self._budget.current_month_period(now)

        if start is None or end is None:
            raise ValidationError("period", "period: start and end must be given together")

        try:
            return BudgetPeriod(start=as_aware(start), end=as_aware(end))
        except PydanticValidationError as e:
            raise to_domain_error(e, default_field="period") from e
