"""Shared pytest fixtures for tally tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
import pytest

from tally.database.factories import create_sqlite_database
from tally.domain.account import AccountService
from tally.domain.category import CategoryService
from tally.domain.entities import AccountType, Currency, Transaction, TransactionType
from tally.domain.ledger import LedgerEngine
from tally.domain.pending import PendingImportQueue

TODAY = date(2024, 3, 15)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def ledger(temp_db):
    """Create a LedgerEngine with a temporary database."""
    return LedgerEngine(temp_db)


@pytest.fixture
def account_service(temp_db, ledger):
    """Create an AccountService sharing the ledger's locks."""
    return AccountService(temp_db, ledger)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def pending_queue(temp_db, ledger):
    """Create a PendingImportQueue with the default null suggester."""
    return PendingImportQueue(temp_db, ledger)


@pytest.fixture
def card(account_service):
    """Default card account starting at 1000.00."""
    return account_service.create_account(
        name="Monobank", tag="#mono", opening_balance=Decimal("1000.00"), is_default=True
    )


@pytest.fixture
def cash(account_service):
    """Cash account starting at 200.00."""
    return account_service.create_account(
        name="Wallet", tag="#cash", account_type=AccountType.CASH, opening_balance=Decimal("200.00")
    )


@pytest.fixture
def usd_account(account_service):
    return account_service.create_account(name="Dollars", tag="#usd", currency=Currency.USD)


@pytest.fixture
def categories(category_service):
    """Seed the default categories and return them by name."""
    category_service.ensure_default_categories()
    return {cat.name: cat for cat in category_service.list_categories()}


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


def expense(account, amount, category=None, on=TODAY, description=""):
    """Build an expense from ``account``."""
    return Transaction(
        type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        transaction_date=on,
        description=description,
        category_id=category.id if category else None,
        from_account_id=account.id,
    )


def income(account, amount, category=None, on=TODAY, description=""):
    """Build an income into ``account``."""
    return Transaction(
        type=TransactionType.INCOME,
        amount=Decimal(amount),
        transaction_date=on,
        description=description,
        category_id=category.id if category else None,
        to_account_id=account.id,
    )


def balance_of(account_service, account):
    return account_service.get_account(account.id).balance
