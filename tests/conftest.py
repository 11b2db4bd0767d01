"""
Pytest fixtures for the ledger kernel test suite.

Provides:
- Database sessions isolated per test (SAVEPOINT rollback)
- The wired service graph and a PostingOrchestrator on its own database
- Account, product and period factories
- Captured structured logs

Environment Variables:
- DATABASE_URL: database to test against.  Defaults to in-memory SQLite;
  point it at PostgreSQL to run the tests marked ``postgres``.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from ledger_config.schema import DatabaseSettings, LedgerSettings
from ledger_kernel.db.base import Base
from ledger_kernel.db.engine import Database
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.documents import SaleDocument, SaleLine
from ledger_kernel.domain.scope import ScopeContext
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.models.account import AccountPurpose, AccountType, NormalBalance
from ledger_kernel.models.inventory import ProductType
from ledger_kernel.services.posting_orchestrator import PostingOrchestrator, build_services

DEFAULT_TEST_URL = "sqlite:///:memory:"


def _test_url() -> str:
    return os.environ.get("DATABASE_URL") or DEFAULT_TEST_URL


def is_postgres() -> bool:
    return _test_url().startswith("postgresql")


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


def pytest_collection_modifyitems(config, items):
    if is_postgres():
        return
    skip_pg = pytest.mark.skip(reason="needs DATABASE_URL pointing at PostgreSQL")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, services):
            ...
            logs = captured_logs()
            assert any(r["message"] == "void_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="session")
def database_settings() -> DatabaseSettings:
    return DatabaseSettings(url=_test_url())


@pytest.fixture(scope="session")
def database(database_settings):
    """One Database for the whole run; tables created once."""
    db = Database(database_settings)
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def session(database) -> Session:
    """
    Session bound to an outer transaction that is rolled back after the test.

    Services flush only, so nothing a test writes survives it.  Nested
    ``begin_nested()`` calls become SAVEPOINTs inside the outer transaction.
    """
    connection = database.engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        expire_on_commit=False,
    )
    yield session
    session.close()
    if transaction.is_active:
        transaction.rollback()
    connection.close()


@pytest.fixture
def settings(database_settings) -> LedgerSettings:
    return LedgerSettings(database=database_settings)


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock fixed at 2024-01-15 12:00 UTC."""
    return DeterministicClock(datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_actor_id() -> UUID:
    return uuid4()


@pytest.fixture
def scope() -> ScopeContext:
    return ScopeContext(tenant_id=uuid4(), company_id=uuid4())


@pytest.fixture
def other_scope(scope) -> ScopeContext:
    """Same tenant, different company."""
    return ScopeContext(tenant_id=scope.tenant_id, company_id=uuid4())


@pytest.fixture
def services(session, settings, deterministic_clock):
    """Every kernel service wired onto the test session."""
    return build_services(session, settings, deterministic_clock)


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def create_account(services, scope, test_actor_id):
    """Factory for accounts in ``scope``."""

    def _create(
        code,
        name=None,
        account_type=AccountType.ASSET,
        purpose=None,
        normal_balance=None,
        in_scope=None,
    ):
        return services.accounts.create_account(
            in_scope or scope,
            code,
            name or f"Account {code}",
            account_type,
            test_actor_id,
            normal_balance=normal_balance,
            purpose=purpose,
        )

    return _create


STANDARD_CHART = (
    ("cash", "1000", "Cash", AccountType.ASSET, AccountPurpose.CASH, None),
    ("ar", "1100", "Accounts Receivable", AccountType.ASSET, AccountPurpose.AR, None),
    ("inventory", "1200", "Inventory", AccountType.ASSET, AccountPurpose.INVENTORY, None),
    ("ap", "2000", "Accounts Payable", AccountType.LIABILITY, AccountPurpose.AP, None),
    ("tax_payable", "2100", "Sales Tax Payable", AccountType.LIABILITY, AccountPurpose.TAX_PAYABLE, None),
    ("revenue", "4000", "Sales Revenue", AccountType.REVENUE, AccountPurpose.REVENUE, None),
    ("sales_discount", "4100", "Sales Discounts", AccountType.REVENUE, AccountPurpose.SALES_DISCOUNT, NormalBalance.DEBIT),
    ("cogs", "5000", "Cost of Goods Sold", AccountType.EXPENSE, AccountPurpose.COGS, None),
    ("expense", "6000", "Operating Expenses", AccountType.EXPENSE, AccountPurpose.EXPENSE, None),
)


@pytest.fixture
def create_chart(create_account):
    """Factory for the purpose-tagged chart of accounts, keyed by short name."""

    def _create(in_scope=None):
        accounts = {}
        for key, code, name, account_type, purpose, normal_balance in STANDARD_CHART:
            accounts[key] = create_account(
                code, name, account_type, purpose, normal_balance, in_scope=in_scope
            )
        return accounts

    return _create


@pytest.fixture
def standard_accounts(create_chart):
    """The standard chart in ``scope``."""
    return create_chart()


@pytest.fixture
def create_product(services, scope, test_actor_id):
    """Factory for products in ``scope``."""

    def _create(sku, cost_price=Decimal("0"), product_type=ProductType.PRODUCT, name=None):
        return services.inventory.create_product(
            scope,
            sku,
            name or f"Product {sku}",
            product_type,
            Decimal(cost_price),
            test_actor_id,
        )

    return _create


@pytest.fixture
def stocked_products(services, scope, create_product, test_actor_id):
    """Product A (cost 10) and B (cost 5), each with 10 units on hand."""
    product_a = create_product("SKU-A", Decimal("10.00"))
    product_b = create_product("SKU-B", Decimal("5.00"))
    for product in (product_a, product_b):
        services.inventory.move(
            scope,
            product.id,
            "adjustment",
            Decimal("10"),
            reference="OPENING",
            actor_id=test_actor_id,
        )
    return product_a, product_b


@pytest.fixture
def lock_period(services, scope, test_actor_id):
    def _lock(year, month, in_scope=None):
        return services.periods.lock_period(in_scope or scope, year, month, test_actor_id)

    return _lock


@pytest.fixture
def make_sale():
    """Builds the two-product sale: 2 x A and 3 x B at 20.00 each, 100.00 total."""

    def _make(number, product_a, product_b, document_date=date(2024, 1, 10), **kwargs):
        return SaleDocument(
            number=number,
            document_date=document_date,
            lines=(
                SaleLine("Widget A", Decimal("2"), Decimal("20.00"), product_a.id),
                SaleLine("Widget B", Decimal("3"), Decimal("20.00"), product_b.id),
            ),
            **kwargs,
        )

    return _make


# =============================================================================
# Orchestrator
# =============================================================================


@pytest.fixture
def orchestrator(deterministic_clock):
    """
    PostingOrchestrator on its own database.

    The orchestrator commits, so it cannot share the rolled-back test
    connection.  SQLite gets a fresh in-memory database per test; PostgreSQL
    gets its rows deleted afterwards.
    """
    url = _test_url()
    settings = LedgerSettings(database=DatabaseSettings(url=url))
    db = Database(settings.database)
    db.create_tables()
    yield PostingOrchestrator(db, settings, deterministic_clock)
    if db.dialect != "sqlite":
        with db.engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())
    db.dispose()


@pytest.fixture
def seeded_orchestrator(orchestrator, scope, test_actor_id):
    """Orchestrator with the standard chart and stocked products A and B."""
    accounts = {}
    for key, code, name, account_type, purpose, normal_balance in STANDARD_CHART:
        accounts[key] = orchestrator.create_account(
            scope,
            code,
            name,
            account_type,
            test_actor_id,
            normal_balance=normal_balance,
            purpose=purpose,
        )
    product_a = orchestrator.create_product(scope, "SKU-A", "Widget A", cost_price=Decimal("10.00"))
    product_b = orchestrator.create_product(scope, "SKU-B", "Widget B", cost_price=Decimal("5.00"))
    with orchestrator.unit_of_work(scope, test_actor_id) as services:
        for product_id in (product_a, product_b):
            services.inventory.move(scope, product_id, "adjustment", Decimal("10"), "OPENING")
    return orchestrator, accounts, (product_a, product_b)
