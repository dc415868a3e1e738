"""
Budget Service

Pure calculations over settings, categories and transactions. Nothing in
here reads or writes storage; callers load the inputs and pass them in.

POLICY (not configurable):
- projected usage <= 80%        -> accept silently
- 80% < projected usage <= 110% -> accept with a warning
- projected usage > 110%        -> reject

"Spent" counts every despesa in the period whose category maps to the
bucket, pending or completed: the policy measures exposure, not only
what has already left the account.
"""

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional
from uuid import UUID

from finance_tracker.models.base import as_aware, utcnow
from finance_tracker.models.budget import (
    BucketSummary,
    BudgetCalculation,
    BudgetPeriod,
    BudgetStatus,
    BudgetTotals,
    ExpenseValidation,
)
from finance_tracker.models.category import (
    CategoryRef,
    FinancialCategory,
    RuleCategory,
    resolve_category,
)
from finance_tracker.models.finance_settings import UserFinanceSettings
from finance_tracker.models.transaction import Transaction


WARNING_THRESHOLD = Decimal("80")
REJECTION_THRESHOLD = Decimal("110")

# Usage bands for reports
SAFE_LIMIT = Decimal("70")
DANGER_LIMIT = Decimal("90")

HUNDRED = Decimal("100")
ZERO = Decimal("0")


def _round_pct(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class BudgetService:
    """
    Budget arithmetic for the necessidades / desejos / futuro policy.

    Stateless; one instance can be shared by every orchestrator.
    """

    # -------------------------------------------------------------------------
    # Periods and settings
    # -------------------------------------------------------------------------

    def current_month_period(self, now: Optional[datetime] = None) -> BudgetPeriod:
        """
        Calendar month containing `now`, in now's timezone.

        The end is the last microsecond of the month, so the range is
        inclusive on both sides.
        """
        now = as_aware(now or utcnow())
        start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        next_month = (start + timedelta(days=32)).replace(day=1)
        return BudgetPeriod(start=start, end=next_month - timedelta(microseconds=1))

    def has_valid_settings(self, settings: Optional[UserFinanceSettings]) -> bool:
        """Settings exist and carry a positive salary."""
        return settings is not None and settings.salary > 0

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    def bucket_for(self, category: Optional[FinancialCategory]) -> Optional[RuleCategory]:
        """Bucket a category maps to; None for uncategorized or unpoliced."""
        if category is None:
            return None
        return category.rule_category

    def resolve_category(
        self,
        ref: Optional[CategoryRef],
        categories: list[FinancialCategory],
    ) -> Optional[FinancialCategory]:
        return resolve_category(ref, categories)

    def spent_by_bucket(
        self,
        transactions: Iterable[Transaction],
        categories: list[FinancialCategory],
        period: Optional[BudgetPeriod] = None,
        exclude_id: Optional[UUID] = None,
    ) -> dict[RuleCategory, Decimal]:
        """
        Sum despesa values per bucket.

        Transactions outside `period` (when given), with no resolvable
        category, or whose id is `exclude_id` are ignored.
        """
        spent = {bucket: ZERO for bucket in RuleCategory}

        for transaction in transactions:
            if not transaction.is_despesa():
                continue
            if exclude_id is not None and transaction.id == exclude_id:
                continue
            if period is not None and not period.contains(transaction.data):
                continue

            category = resolve_category(transaction.category_ref(), categories)
            bucket = self.bucket_for(category)
            if bucket is None:
                continue
            spent[bucket] += transaction.valor

        return spent

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def usage_percentage(self, spent: Decimal, budget: Decimal) -> Decimal:
        """Share of the budget used, capped at 100."""
        if budget <= 0:
            return ZERO
        return _round_pct(min(spent / budget * HUNDRED, HUNDRED))

    def budget_status(self, usage_percentage: Decimal) -> BudgetStatus:
        if usage_percentage < SAFE_LIMIT:
            return BudgetStatus.SAFE
        if usage_percentage < DANGER_LIMIT:
            return BudgetStatus.WARNING
        return BudgetStatus.DANGER

    def calculate_budget(
        self,
        settings: UserFinanceSettings,
        transactions: Iterable[Transaction],
        categories: list[FinancialCategory],
        period: BudgetPeriod,
    ) -> BudgetCalculation:
        """Per-bucket budget, spent, remaining and usage for the period."""
        caps = settings.calculate_budgets()
        spent = self.spent_by_bucket(transactions, categories, period)

        summaries = {}
        for bucket in RuleCategory:
            budget = caps.for_bucket(bucket)
            usage = self.usage_percentage(spent[bucket], budget)
            summaries[bucket.value] = BucketSummary(
                budget=budget,
                spent=spent[bucket],
                remaining=budget - spent[bucket],
                percentage=settings.percentage_for(bucket),
                usage_percentage=usage,
                status=self.budget_status(usage),
            )

        total_spent = sum(spent.values(), ZERO)
        return BudgetCalculation(
            **summaries,
            total=BudgetTotals(
                budget=caps.total,
                spent=total_spent,
                remaining=caps.total - total_spent,
            ),
        )

    def empty_budget(self) -> BudgetCalculation:
        """All-zero calculation for users without settings."""
        blank = BucketSummary(
            budget=ZERO,
            spent=ZERO,
            remaining=ZERO,
            percentage=0,
            usage_percentage=ZERO,
            status=BudgetStatus.SAFE,
        )
        return BudgetCalculation(
            necessidades=blank,
            desejos=blank,
            futuro=blank,
            total=BudgetTotals(budget=ZERO, spent=ZERO, remaining=ZERO),
        )

    # -------------------------------------------------------------------------
    # Expense gate
    # -------------------------------------------------------------------------

    def validate_expense(
        self,
        candidate_value: Decimal,
        category_ref: Optional[CategoryRef],
        settings: Optional[UserFinanceSettings],
        period_transactions: Iterable[Transaction],
        categories: list[FinancialCategory],
        period: Optional[BudgetPeriod] = None,
    ) -> ExpenseValidation:
        """
        Check whether one more expense keeps its bucket within policy.

        Uncategorized expenses, categories without a bucket, and users
        without valid settings are always accepted.
        """
        if not self.has_valid_settings(settings):
            return ExpenseValidation(accepted=True)

        category = resolve_category(category_ref, categories)
        bucket = self.bucket_for(category)
        if bucket is None:
            return ExpenseValidation(accepted=True)

        cap = settings.calculate_budgets().for_bucket(bucket)
        spent_so_far = self.spent_by_bucket(period_transactions, categories, period)[bucket]
        projected = spent_so_far + candidate_value

        if cap <= 0:
            return ExpenseValidation(
                accepted=False,
                percentage_after=ZERO,
                bucket=bucket.value,
                message=f"Bucket '{bucket.value}' has no budget allocated",
            )

        raw_percentage = projected / cap * HUNDRED
        percentage = _round_pct(raw_percentage)

        if raw_percentage > REJECTION_THRESHOLD:
            return ExpenseValidation(
                accepted=False,
                percentage_after=percentage,
                bucket=bucket.value,
                message=(
                    f"Expense of {candidate_value:.2f} would take '{bucket.value}' "
                    f"to {percentage}% of its {cap:.2f} budget "
                    f"(maximum {REJECTION_THRESHOLD}%)"
                ),
            )

        if raw_percentage > HUNDRED:
            return ExpenseValidation(
                accepted=True,
                percentage_after=percentage,
                bucket=bucket.value,
                message=f"This expense goes over the '{bucket.value}' budget ({percentage}%)",
                is_warning=True,
            )

        if raw_percentage > WARNING_THRESHOLD:
            return ExpenseValidation(
                accepted=True,
                percentage_after=percentage,
                bucket=bucket.value,
                message=f"'{bucket.value}' budget is at {percentage}%",
                is_warning=True,
            )

        return ExpenseValidation(
            accepted=True,
            percentage_after=percentage,
            bucket=bucket.value,
        )
