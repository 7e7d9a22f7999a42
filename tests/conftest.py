"""
Pytest configuration and fixtures for statement ledger tests.
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

sys.path.insert(0, str(PROJECT_ROOT / "python"))

from ledger import LedgerStore, create_ledger_engine  # noqa: E402


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def config_dir() -> Path:
    """Return the config directory path."""
    return PROJECT_ROOT / "config"


@pytest.fixture
def store() -> LedgerStore:
    """Fresh in-memory ledger store with all tables created."""
    ledger = LedgerStore(create_ledger_engine("sqlite://"))
    ledger.create_schema()
    return ledger


@pytest.fixture
def account_id(store: LedgerStore) -> int:
    """A checking account."""
    return store.create_account("Checking", "bank", "Fifth Third Bank")


@pytest.fixture
def auto_loan(store: LedgerStore) -> int:
    """An auto loan with a 15,000.00 balance."""
    return store.create_liability(
        name="Car Loan",
        liability_type="auto_loan",
        original_amount=Decimal("20000.00"),
        current_balance=Decimal("15000.00"),
        monthly_payment=Decimal("450.00"),
    )


@pytest.fixture
def generic_csv() -> str:
    """Sample CSV with only the generic date/description/amount columns."""
    return """Date,Description,Amount
01/15/2024,COFFEE SHOP,-4.50
01/16/2024,PAYROLL DEPOSIT,2500.00
"""


@pytest.fixture
def amex_csv() -> str:
    """Sample American Express export (charges positive)."""
    return """Date,Description,Card Member,Account #,Amount
01/15/2024,AMAZON,JANE DOE,-41006,25.00
01/16/2024,ONLINE PAYMENT - THANK YOU,JANE DOE,-41006,-500.00
"""


@pytest.fixture
def chase_csv() -> str:
    """Sample Chase credit card export (purchases negative)."""
    return """Transaction Date,Post Date,Description,Category,Type,Amount,Memo
01/15/2024,01/16/2024,STARBUCKS STORE 123,Food & Drink,Sale,-6.75,
01/17/2024,01/18/2024,AUTOMATIC PAYMENT - THANK,,Payment,1200.00,
01/20/2024,01/21/2024,SHELL OIL 5744,Gas,Sale,-48.10,
"""


@pytest.fixture
def loan_payment_csv() -> str:
    """Bank export containing a car loan payment."""
    return """Date,Description,Amount
02/01/2024,AUTO FINANCE CO PMT,-450.00
02/02/2024,WHOLE FOODS MARKET,-82.13
"""


# Environment setup for tests
@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Keep tests away from real credentials and databases."""
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("CATEGORIZER_MODEL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("POSTGRES_HOST", raising=False)
    yield
