"""Shared test fixtures for the finance tracker."""

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.config.settings import AlphaVantageSettings, AppSettings
from finance_tracker.models.finance import AppState, Budget, Category
from finance_tracker.services.storage import InMemoryAuditStorage, InMemoryBlobStore
from finance_tracker.store import FinanceStore
from finance_tracker.validation import InputValidator

from tests.fakes import TODAY


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def app_settings(tmp_path):
    return AppSettings(storage_backend="memory", data_dir=tmp_path)


@pytest.fixture
def validator(app_settings):
    return InputValidator(app_settings)


@pytest.fixture
def alpha_vantage_settings():
    return AlphaVantageSettings(api_key="demo", batch_delay_seconds=5.0, lookup_delay_seconds=1.0)


@pytest.fixture
def budget_2024():
    return Budget(
        id="budget-2024",
        name="Household 2024",
        year=2024,
        categories=[
            Category(id="cat-groceries", name="Groceries", budgeted=1200.0),
            Category(id="cat-rent", name="Rent", budgeted=12000.0),
        ],
    )


@pytest.fixture
def state_2024(budget_2024):
    return AppState(budgets=[budget_2024], active_budget_id=budget_2024.id)


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def store(blob_store, audit_storage, app_settings, validator):
    return FinanceStore(
        blob_store,
        audit_logger=AuditLogger(audit_storage),
        settings=app_settings,
        validator=validator,
        today=lambda: TODAY,
    )
