"""
Ledger Persistence Module

SQLAlchemy-backed store for accounts, transactions, preferences, liabilities
and liability payments.
"""

from .database import create_ledger_engine, database_url
from .fingerprint import normalize_description, to_money, transaction_fingerprint
from .store import LedgerStore, metadata

__all__ = [
    "create_ledger_engine",
    "database_url",
    "normalize_description",
    "to_money",
    "transaction_fingerprint",
    "LedgerStore",
    "metadata",
]
