"""
Tests for BudgetService

Pure calculations: no storage, every input built in the test.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from finance_tracker.models import (
    BudgetStatus,
    CategoryById,
    CategoryByName,
    CategoryType,
    FinancialCategory,
    RuleCategory,
    Transaction,
    TransactionType,
    UserFinanceSettings,
)
from finance_tracker.models.base import utcnow
from finance_tracker.services.budget import (
    REJECTION_THRESHOLD,
    WARNING_THRESHOLD,
    BudgetService,
)


USER = "user-1"


@pytest.fixture
def budget():
    return BudgetService()


@pytest.fixture
def settings():
    return UserFinanceSettings.create(
        salary=Decimal("5000"), fixed=50, variable=30, investments=20, user_id=USER
    )


@pytest.fixture
def futuro():
    return FinancialCategory.create(
        nome="Investimentos",
        tipo=CategoryType.DESPESA,
        rule_category=RuleCategory.FUTURO,
        user_id=USER,
    )


@pytest.fixture
def mercado():
    return FinancialCategory.create(
        nome="Mercado",
        tipo=CategoryType.DESPESA,
        rule_category=RuleCategory.NECESSIDADES,
        user_id=USER,
    )


def expense(valor, category=None, tipo=TransactionType.DESPESA, data=None, categoria=None):
    return Transaction.create(
        descricao="Gasto",
        valor=Decimal(valor),
        tipo=tipo,
        categoria_id=category.id if category else None,
        categoria=categoria,
        data=data or utcnow(),
        user_id=USER,
    )


class TestPolicyConstants:

    def test_thresholds(self):
        assert WARNING_THRESHOLD == Decimal("80")
        assert REJECTION_THRESHOLD == Decimal("110")


class TestValidateExpense:
    """Tests for the 80% / 110% expense policy on a 1000 futuro cap."""

    def test_rejects_above_110_percent(self, budget, settings, futuro):
        """Spent 950 + 200 = 1150 of 1000 -> 115%, rejected."""
        result = budget.validate_expense(
            Decimal("200"),
            CategoryById(id=futuro.id),
            settings,
            [expense("950", futuro)],
            [futuro],
        )
        assert not result.accepted
        assert result.percentage_after == Decimal("115")
        assert result.bucket == "futuro"
        assert "115" in result.message
        assert "futuro" in result.message
        assert result.warning is None

    def test_warns_between_80_and_110_percent(self, budget, settings, futuro):
        """Spent 700 + 200 = 900 of 1000 -> 90%, accepted with a warning."""
        result = budget.validate_expense(
            Decimal("200"),
            CategoryById(id=futuro.id),
            settings,
            [expense("700", futuro)],
            [futuro],
        )
        assert result.accepted
        assert result.is_warning
        assert result.percentage_after == Decimal("90")
        assert result.warning.bucket == "futuro"

    def test_accepts_silently_at_low_usage(self, budget, settings, futuro):
        """Spent 100 + 50 = 150 of 1000 -> 15%, accepted without warning."""
        result = budget.validate_expense(
            Decimal("50"),
            CategoryById(id=futuro.id),
            settings,
            [expense("100", futuro)],
            [futuro],
        )
        assert result.accepted
        assert not result.is_warning
        assert result.percentage_after == Decimal("15")
        assert result.warning is None

    def test_exactly_80_percent_is_silent(self, budget, settings, futuro):
        result = budget.validate_expense(
            Decimal("800"), CategoryById(id=futuro.id), settings, [], [futuro]
        )
        assert result.accepted
        assert not result.is_warning

    def test_exactly_110_percent_is_accepted(self, budget, settings, futuro):
        result = budget.validate_expense(
            Decimal("1100"), CategoryById(id=futuro.id), settings, [], [futuro]
        )
        assert result.accepted
        assert result.is_warning

    def test_over_100_message_differs_from_over_80(self, budget, settings, futuro):
        ref = CategoryById(id=futuro.id)
        over_80 = budget.validate_expense(Decimal("850"), ref, settings, [], [futuro])
        over_100 = budget.validate_expense(Decimal("1050"), ref, settings, [], [futuro])
        assert over_80.message != over_100.message

    def test_other_buckets_and_types_do_not_count(self, budget, settings, futuro, mercado):
        period_transactions = [
            expense("900", mercado),
            expense("900", futuro, tipo=TransactionType.RECEITA),
            expense("900"),
        ]
        result = budget.validate_expense(
            Decimal("100"), CategoryById(id=futuro.id), settings, period_transactions, [futuro, mercado]
        )
        assert result.percentage_after == Decimal("10")

    def test_legacy_label_reference(self, budget, settings, futuro):
        result = budget.validate_expense(
            Decimal("200"),
            CategoryByName(name="Investimentos"),
            settings,
            [expense("950", categoria="Investimentos")],
            [futuro],
        )
        assert not result.accepted

    def test_unknown_category_is_accepted(self, budget, settings, futuro):
        result = budget.validate_expense(
            Decimal("99999"), CategoryByName(name="Desconhecida"), settings, [], [futuro]
        )
        assert result.accepted
        assert result.bucket is None

    def test_category_without_bucket_is_accepted(self, budget, settings):
        outros = FinancialCategory.create(
            nome="Outros", tipo=CategoryType.DESPESA, user_id=USER
        )
        result = budget.validate_expense(
            Decimal("99999"), CategoryById(id=outros.id), settings, [], [outros]
        )
        assert result.accepted

    def test_missing_settings_accepts(self, budget, futuro):
        result = budget.validate_expense(
            Decimal("99999"), CategoryById(id=futuro.id), None, [], [futuro]
        )
        assert result.accepted

    def test_period_filter(self, budget, settings, futuro):
        period = budget.current_month_period(utcnow())
        old = expense("950", futuro, data=period.start - timedelta(days=1))
        result = budget.validate_expense(
            Decimal("200"), CategoryById(id=futuro.id), settings, [old], [futuro], period
        )
        assert result.accepted
        assert result.percentage_after == Decimal("20")


class TestCalculateBudget:
    """Tests for the per-bucket budget report."""

    def test_caps_and_spent(self, budget, settings, futuro, mercado):
        period = budget.current_month_period(utcnow())
        calculation = budget.calculate_budget(
            settings,
            [expense("2000", mercado), expense("100", futuro)],
            [futuro, mercado],
            period,
        )

        assert calculation.necessidades.budget == Decimal("2500")
        assert calculation.desejos.budget == Decimal("1500")
        assert calculation.futuro.budget == Decimal("1000")

        assert calculation.necessidades.spent == Decimal("2000")
        assert calculation.necessidades.remaining == Decimal("500")
        assert calculation.necessidades.percentage == 50
        assert calculation.necessidades.usage_percentage == Decimal("80")
        assert calculation.necessidades.status == BudgetStatus.WARNING

        assert calculation.futuro.status == BudgetStatus.SAFE
        assert calculation.desejos.spent == Decimal("0")

        assert calculation.total.budget == Decimal("5000")
        assert calculation.total.spent == Decimal("2100")
        assert calculation.total.remaining == Decimal("2900")

    def test_usage_is_capped_and_remaining_goes_negative(self, budget, settings, futuro):
        period = budget.current_month_period(utcnow())
        calculation = budget.calculate_budget(
            settings, [expense("1200", futuro)], [futuro], period
        )
        assert calculation.futuro.usage_percentage == Decimal("100")
        assert calculation.futuro.status == BudgetStatus.DANGER
        assert calculation.futuro.remaining == Decimal("-200")

    def test_empty_budget(self, budget):
        calculation = budget.empty_budget()
        assert calculation.total.budget == Decimal("0")
        assert calculation.bucket("futuro").status == BudgetStatus.SAFE


class TestPeriods:

    def test_current_month_bounds(self, budget):
        period = budget.current_month_period(datetime(2024, 2, 14, 15, 30, tzinfo=timezone.utc))
        assert period.start == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert period.end == datetime(2024, 2, 29, 23, 59, 59, 999999, tzinfo=timezone.utc)

    def test_december_rolls_over(self, budget):
        period = budget.current_month_period(datetime(2023, 12, 31, 23, 0, tzinfo=timezone.utc))
        assert period.end == datetime(2023, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)

    def test_month_follows_the_given_timezone(self, budget):
        sao_paulo = ZoneInfo("America/Sao_Paulo")
        moment = datetime(2024, 3, 1, 1, 0, tzinfo=timezone.utc).astimezone(sao_paulo)
        period = budget.current_month_period(moment)
        assert period.start.month == 2

    def test_has_valid_settings(self, budget, settings):
        assert budget.has_valid_settings(settings)
        assert not budget.has_valid_settings(None)
