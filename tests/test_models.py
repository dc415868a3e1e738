"""
Tests for the domain models

Test strategy:
1. Unit tests for entities and value objects (no storage)
2. Every invariant violation surfaces as the domain ValidationError
   naming the offending field
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from finance_tracker.errors import (
    InvalidStatusTransitionError,
    TransactionAlreadyCompletedError,
    ValidationError,
)
from finance_tracker.models import (
    AccountType,
    BudgetPeriod,
    CategoryById,
    CategoryByName,
    CategoryType,
    ExpenseValidation,
    FinancialAccount,
    FinancialCategory,
    LifecycleEventBuilder,
    LifecycleEventType,
    LifecycleSeverity,
    RuleCategory,
    Transaction,
    TransactionPatch,
    TransactionStatus,
    TransactionType,
    UserFinanceSettings,
    category_ref_from,
    resolve_category,
)
from finance_tracker.models.base import utcnow


def make_transaction(**overrides):
    fields = dict(
        descricao="Supermercado",
        valor=Decimal("100"),
        tipo=TransactionType.DESPESA,
        data=utcnow(),
        user_id="user-1",
    )
    fields.update(overrides)
    return Transaction.create(**fields)


class TestTransaction:
    """Tests for the Transaction entity."""

    def test_create_defaults_to_pending(self):
        """New transactions start pending."""
        transaction = make_transaction()
        assert transaction.status == TransactionStatus.PENDING
        assert transaction.is_pending()
        assert transaction.is_despesa()

    def test_create_refuses_completed_status(self):
        with pytest.raises(ValidationError) as exc_info:
            make_transaction(status=TransactionStatus.COMPLETED)
        assert exc_info.value.field == "status"

        assert make_transaction(status="pending").is_pending()

    def test_create_strips_whitespace(self):
        """Test that whitespace is stripped from descricao."""
        transaction = make_transaction(descricao="  Padaria  ")
        assert transaction.descricao == "Padaria"

    @pytest.mark.parametrize("valor", [Decimal("0"), Decimal("-10")])
    def test_create_rejects_non_positive_valor(self, valor):
        with pytest.raises(ValidationError) as exc_info:
            make_transaction(valor=valor)
        assert exc_info.value.field == "valor"

    def test_update_rejects_non_positive_valor(self):
        """Setters re-run the invariant and leave the value unchanged."""
        transaction = make_transaction()
        with pytest.raises(ValidationError) as exc_info:
            transaction.update_valor(Decimal("0"))
        assert exc_info.value.field == "valor"
        assert transaction.valor == Decimal("100")

    def test_create_rejects_blank_descricao(self):
        with pytest.raises(ValidationError) as exc_info:
            make_transaction(descricao="   ")
        assert exc_info.value.field == "descricao"

    def test_create_rejects_future_date(self):
        with pytest.raises(ValidationError) as exc_info:
            make_transaction(data=utcnow() + timedelta(days=1))
        assert exc_info.value.field == "data"
        assert "future" in exc_info.value.message

    def test_update_rejects_future_date(self):
        transaction = make_transaction()
        with pytest.raises(ValidationError) as exc_info:
            transaction.update_data(utcnow() + timedelta(hours=1))
        assert exc_info.value.field == "data"

    def test_naive_date_is_treated_as_utc(self):
        transaction = make_transaction(data=datetime(2024, 1, 15, 12, 0))
        assert transaction.data.tzinfo == timezone.utc

    def test_mark_completed_twice_fails(self):
        transaction = make_transaction()
        transaction.mark_completed()
        assert transaction.is_completed()
        with pytest.raises(TransactionAlreadyCompletedError):
            transaction.mark_completed()

    def test_mark_pending_from_pending_fails(self):
        transaction = make_transaction()
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            transaction.mark_pending()
        assert exc_info.value.field == "status"

    def test_update_status_allows_same_status(self):
        transaction = make_transaction()
        transaction.update_status(TransactionStatus.PENDING)
        assert transaction.is_pending()

    def test_setters_bump_updated_at(self):
        transaction = make_transaction()
        before = transaction.updated_at
        transaction.update_descricao("Feira")
        assert transaction.updated_at >= before
        assert transaction.descricao == "Feira"

    def test_update_fields_refuses_identity_fields(self):
        transaction = make_transaction()
        with pytest.raises(ValidationError) as exc_info:
            transaction.update_fields(user_id="someone-else")
        assert exc_info.value.field == "user_id"

    def test_blank_optional_text_becomes_none(self):
        transaction = make_transaction(categoria="", observacoes="")
        assert transaction.categoria is None
        assert transaction.observacoes is None


class TestCategoryReference:
    """Tests for the categoria_id / legacy label reference."""

    def test_categoria_id_wins_over_label(self):
        category_id = uuid4()
        ref = category_ref_from(category_id, "Mercado")
        assert ref == CategoryById(id=category_id)

    def test_label_becomes_name_reference(self):
        assert category_ref_from(None, "Mercado") == CategoryByName(name="Mercado")

    def test_uuid_label_becomes_id_reference(self):
        category_id = uuid4()
        assert category_ref_from(None, str(category_id)) == CategoryById(id=category_id)

    def test_no_category_gives_no_reference(self):
        assert category_ref_from(None, None) is None
        assert make_transaction().category_ref() is None

    def test_resolve_by_id_and_by_name(self):
        category = FinancialCategory.create(
            nome="Mercado",
            tipo=CategoryType.DESPESA,
            rule_category=RuleCategory.NECESSIDADES,
            user_id="user-1",
        )
        assert resolve_category(CategoryById(id=category.id), [category]) is category
        assert resolve_category(CategoryByName(name="Mercado"), [category]) is category
        assert resolve_category(CategoryByName(name="Lazer"), [category]) is None


class TestFinancialCategory:
    """Tests for the FinancialCategory entity."""

    def test_invalid_color_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            FinancialCategory.create(
                nome="Lazer",
                tipo=CategoryType.DESPESA,
                cor="red",
                user_id="user-1",
            )
        assert exc_info.value.field == "cor"

    def test_archive_deactivates(self):
        category = FinancialCategory.create(
            nome="Lazer", tipo=CategoryType.DESPESA, user_id="user-1"
        )
        category.archive()
        assert not category.is_active()

    def test_default_categories(self):
        category = FinancialCategory.create(
            nome="Outros", tipo=CategoryType.DESPESA, user_id="user-1"
        )
        assert category.is_default()


class TestFinancialAccount:
    """Tests for the FinancialAccount entity."""

    def make_account(self, saldo="500"):
        return FinancialAccount.create(
            nome="Carteira",
            tipo=AccountType.CARTEIRA,
            saldo_inicial=Decimal(saldo),
            user_id="user-1",
        )

    def test_current_balance_starts_at_initial(self):
        assert self.make_account().saldo_atual == Decimal("500")

    def test_credit_and_debit(self):
        account = self.make_account()
        account.credit(Decimal("50"))
        account.debit(Decimal("200"))
        assert account.saldo_atual == Decimal("350")

    def test_debit_may_go_negative(self):
        """Funds checks belong to the orchestrators, not the entity."""
        account = self.make_account("10")
        account.debit(Decimal("20"))
        assert account.saldo_atual == Decimal("-10")

    @pytest.mark.parametrize("valor", [Decimal("0"), Decimal("-1")])
    def test_movements_must_be_positive(self, valor):
        account = self.make_account()
        with pytest.raises(ValidationError):
            account.credit(valor)
        with pytest.raises(ValidationError):
            account.debit(valor)

    def test_has_sufficient_balance(self):
        account = self.make_account("100")
        assert account.has_sufficient_balance(Decimal("100"))
        assert not account.has_sufficient_balance(Decimal("100.01"))

    def test_negative_initial_balance_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.make_account("-1")
        assert exc_info.value.field == "saldo_inicial"


class TestUserFinanceSettings:
    """Tests for the salary allocation settings."""

    def make_settings(self, **overrides):
        fields = dict(
            salary=Decimal("5000"), fixed=50, variable=30, investments=20, user_id="user-1"
        )
        fields.update(overrides)
        return UserFinanceSettings.create(**fields)

    def test_calculate_budgets(self):
        caps = self.make_settings().calculate_budgets()
        assert caps.fixed == Decimal("2500")
        assert caps.variable == Decimal("1500")
        assert caps.investments == Decimal("1000")
        assert caps.for_bucket(RuleCategory.FUTURO) == Decimal("1000")

    def test_percentages_must_sum_to_100(self):
        with pytest.raises(ValidationError):
            self.make_settings(fixed=50, variable=30, investments=10)

    def test_percentage_bounds(self):
        with pytest.raises(ValidationError) as exc_info:
            self.make_settings(fixed=65, variable=15, investments=20)
        assert exc_info.value.field == "fixed"

    def test_update_checks_combined_result(self):
        settings = self.make_settings()
        settings.update(fixed=60, variable=20)
        assert settings.fixed == 60
        assert settings.variable == 20

        with pytest.raises(ValidationError):
            settings.update(fixed=40)
        assert settings.fixed == 60

    def test_update_is_all_or_nothing(self):
        settings = self.make_settings()
        original_id, created_at, updated_at = settings.id, settings.created_at, settings.updated_at

        with pytest.raises(ValidationError) as exc_info:
            settings.update(salary=Decimal("6000"), investments=35)
        assert exc_info.value.field == "investments"
        assert settings.salary == Decimal("5000")
        assert settings.updated_at == updated_at

        settings.update(salary=Decimal("6000"), variable=20, investments=30)
        assert settings.salary == Decimal("6000")
        assert settings.calculate_budgets().investments == Decimal("1800")
        assert settings.id == original_id
        assert settings.created_at == created_at
        assert settings.updated_at >= updated_at

        with pytest.raises(ValidationError) as exc_info:
            settings.update(salary=Decimal("0"))
        assert exc_info.value.field == "salary"


class TestBudgetValueObjects:
    """Tests for budget result types."""

    def test_period_rejects_inverted_range(self):
        start = utcnow()
        with pytest.raises(ValueError):
            BudgetPeriod(start=start, end=start - timedelta(days=1))

    def test_warning_only_for_accepted_warnings(self):
        silent = ExpenseValidation(accepted=True, bucket="futuro")
        rejected = ExpenseValidation(
            accepted=False, bucket="futuro", percentage_after=Decimal("115"), message="no"
        )
        warned = ExpenseValidation(
            accepted=True,
            bucket="futuro",
            percentage_after=Decimal("90"),
            message="'futuro' budget is at 90%",
            is_warning=True,
        )
        assert silent.warning is None
        assert rejected.warning is None
        assert warned.warning.percentage == Decimal("90")

    def test_patch_tracks_explicit_fields(self):
        patch = TransactionPatch(valor=Decimal("10"), categoria=None)
        assert patch.provided() == {"valor": Decimal("10"), "categoria": None}


class TestLifecycleEvents:
    """Tests for lifecycle event models."""

    def test_transaction_event_to_log_dict(self):
        transaction_id = uuid4()
        event = LifecycleEventBuilder.transaction_event(
            event_type=LifecycleEventType.TRANSACTION_CREATED,
            transaction_id=transaction_id,
            user_id="user-1",
            status="pending",
            valor=Decimal("12.5"),
            tipo="despesa",
            correlation_id=uuid4(),
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "transaction_created"
        assert log_dict["entity_id"] == str(transaction_id)
        assert log_dict["details"]["valor"] == "12.50"

    def test_operation_failed_is_warning(self):
        event = LifecycleEventBuilder.operation_failed(
            operation="complete_transaction",
            user_id="user-1",
            error_code="INSUFFICIENT_BALANCE",
            error_message="Insufficient balance",
            correlation_id=uuid4(),
        )
        assert event.severity == LifecycleSeverity.WARNING
        assert event.error_code == "INSUFFICIENT_BALANCE"
