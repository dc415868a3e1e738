"""Shared fixtures: an in-memory store seeded with one user's data."""

from decimal import Decimal

import pytest

from finance_tracker.config import ConcurrencySettings
from finance_tracker.events import LifecycleLogger
from finance_tracker.models import (
    AccountType,
    CategoryType,
    FinancialAccount,
    FinancialCategory,
    RuleCategory,
    UserFinanceSettings,
)
from finance_tracker.models.base import utcnow
from finance_tracker.orchestrator import TransactionService
from finance_tracker.services.storage import InMemoryDatabase, InMemoryUnitOfWork


USER = "user-1"
OTHER_USER = "user-2"


class RecordingLogger(LifecycleLogger):
    """LifecycleLogger that also keeps every event it logs."""

    def __init__(self):
        super().__init__()
        self.events = []

    def log(self, event):
        self.events.append(event)
        super().log(event)

    def types(self):
        return [event.event_type for event in self.events]


@pytest.fixture
def now():
    return utcnow()


@pytest.fixture
def database():
    return InMemoryDatabase()


@pytest.fixture
def lifecycle_logger():
    return RecordingLogger()


@pytest.fixture
def no_wait_retries():
    return ConcurrencySettings(max_attempts=10, wait_multiplier=0.0, wait_max=0.0)


@pytest.fixture
def service(database, lifecycle_logger, no_wait_retries, now):
    return TransactionService(
        unit_of_work=InMemoryUnitOfWork(database),
        lifecycle_logger=lifecycle_logger,
        concurrency=no_wait_retries,
        clock=lambda: now,
    )


@pytest.fixture
def account(database):
    return database.add_account(
        FinancialAccount.create(
            nome="Conta Corrente",
            tipo=AccountType.CONTA_CORRENTE,
            instituicao="Banco",
            saldo_inicial=Decimal("500"),
            user_id=USER,
        )
    )


@pytest.fixture
def finance_settings(database):
    return database.put_settings(
        UserFinanceSettings.create(
            salary=Decimal("5000"),
            fixed=50,
            variable=30,
            investments=20,
            user_id=USER,
        )
    )


@pytest.fixture
def categories(database):
    """One expense category per bucket, plus one outside the policy."""
    created = {
        "mercado": FinancialCategory.create(
            nome="Mercado",
            tipo=CategoryType.DESPESA,
            rule_category=RuleCategory.NECESSIDADES,
            user_id=USER,
        ),
        "lazer": FinancialCategory.create(
            nome="Lazer",
            tipo=CategoryType.DESPESA,
            rule_category=RuleCategory.DESEJOS,
            user_id=USER,
        ),
        "investimentos": FinancialCategory.create(
            nome="Investimentos",
            tipo=CategoryType.DESPESA,
            rule_category=RuleCategory.FUTURO,
            user_id=USER,
        ),
        "outros": FinancialCategory.create(
            nome="Outros",
            tipo=CategoryType.DESPESA,
            user_id=USER,
        ),
    }
    for category in created.values():
        database.add_category(category)
    return created


def balance_of(database, account):
    return database.get_account(account.id).saldo_atual
