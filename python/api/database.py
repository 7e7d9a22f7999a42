"""
Database Connection Module

Provides the ledger store for FastAPI dependency injection.
"""

from functools import lru_cache

from ledger import LedgerStore, create_ledger_engine


@lru_cache(maxsize=1)
def _default_store() -> LedgerStore:
    store = LedgerStore(create_ledger_engine())
    store.create_schema()
    return store


def get_store() -> LedgerStore:
    """Get the ledger store for FastAPI dependency injection.

    The engine is built from the environment on first use.

    Returns:
        LedgerStore
    """
    return _default_store()
