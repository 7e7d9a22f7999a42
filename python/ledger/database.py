"""
Database Connection Module

Builds the SQLAlchemy engine for the ledger store from the environment.
"""

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

DEFAULT_SQLITE_URL = "sqlite:///finance.db"


def database_url() -> str:
    """Resolve the database URL.

    ``DATABASE_URL`` wins; otherwise a psycopg2 PostgreSQL URL is assembled
    from the ``POSTGRES_*`` variables when ``POSTGRES_HOST`` is set; otherwise
    a local SQLite file is used.

    Returns:
        SQLAlchemy database URL
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    if os.getenv("POSTGRES_HOST"):
        return (
            f"postgresql+psycopg2://{os.getenv('POSTGRES_USER', 'finance')}:"
            f"{os.getenv('POSTGRES_PASSWORD', 'password')}@"
            f"{os.getenv('POSTGRES_HOST')}:"
            f"{os.getenv('POSTGRES_PORT', '5432')}/"
            f"{os.getenv('POSTGRES_DB', 'finance')}"
        )

    return DEFAULT_SQLITE_URL


def create_ledger_engine(url: str | None = None) -> Engine:
    """Create an engine for the ledger database.

    In-memory SQLite shares one connection so every caller sees the same data.

    Args:
        url: Database URL (resolved from the environment if not provided)

    Returns:
        SQLAlchemy engine
    """
    url = url or database_url()

    if url.startswith("sqlite"):
        if url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )
