"""
Ledger Store Module

Persistence operations consumed by the ingestion pipeline and the liability
payment service. Rows are returned as plain dictionaries.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterator

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine

from .fingerprint import to_money, transaction_fingerprint

logger = logging.getLogger(__name__)

metadata = MetaData()

accounts = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("type", String(32), nullable=False),  # bank, credit_card, brokerage
    Column("institution", String(255)),
    Column("created_at", DateTime, default=datetime.now),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("account_id", Integer, ForeignKey("accounts.id")),
    Column("date", String(10), nullable=False),
    Column("description", Text, nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),  # negative = outflow
    Column("category", String(100)),
    Column("subcategory", String(100)),
    Column("merchant", String(255)),
    Column("is_transfer", Boolean, nullable=False, default=False),
    Column("notes", Text),
    Column("raw_data", JSON),
    Column("fingerprint", String(64), nullable=False, index=True),
    Column("created_at", DateTime, default=datetime.now),
)

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("color", String(16)),
    Column("icon", String(32)),
)

user_preferences = Table(
    "user_preferences",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("instruction", Text, nullable=False),
    Column("source", String(16), nullable=False, default="user"),  # user, learned
    Column("merchant_key", String(255)),  # set only for learned entries
    Column("created_at", DateTime, default=datetime.now),
    Column("updated_at", DateTime, default=datetime.now),
    Index("ix_user_preferences_merchant_key", "merchant_key", unique=True),
)

ai_settings = Table(
    "ai_settings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("setting_key", String(64), nullable=False, unique=True),
    Column("setting_value", Text, nullable=False),
    Column("updated_at", DateTime, default=datetime.now),
)

liabilities = Table(
    "liabilities",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("type", String(32), nullable=False),  # auto_loan, mortgage, ...
    Column("original_amount", Numeric(12, 2), nullable=False),
    Column("current_balance", Numeric(12, 2), nullable=False),
    Column("interest_rate", Numeric(5, 3)),
    Column("monthly_payment", Numeric(12, 2)),
    Column("notes", Text),
    Column("created_at", DateTime, default=datetime.now),
    Column("updated_at", DateTime, default=datetime.now),
)

liability_payment_rules = Table(
    "liability_payment_rules",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("liability_id", Integer, ForeignKey("liabilities.id"), nullable=False),
    Column("match_merchant", String(255)),
    Column("match_description", String(255)),
    Column("match_account_id", Integer),
    Column("rule_description", Text),
    Column("auto_apply", Boolean, nullable=False, default=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, default=datetime.now),
)

# transaction_id carries no foreign key so payment history survives deletes
liability_payments = Table(
    "liability_payments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("transaction_id", Integer, nullable=False, index=True),
    Column("liability_id", Integer, ForeignKey("liabilities.id"), nullable=False),
    Column("rule_id", Integer),
    Column("status", String(16), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("created_at", DateTime, default=datetime.now),
    Column("updated_at", DateTime, default=datetime.now),
)

statement_uploads = Table(
    "statement_uploads",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("account_id", Integer, ForeignKey("accounts.id")),
    Column("period_start", String(10), nullable=False),
    Column("period_end", String(10), nullable=False),
    Column("filename", String(255)),
    Column("transaction_count", Integer),
    Column("created_at", DateTime, default=datetime.now),
)

TRANSACTION_UPDATE_FIELDS = (
    "account_id",
    "date",
    "description",
    "amount",
    "category",
    "subcategory",
    "merchant",
    "is_transfer",
    "notes",
)

RULE_UPDATE_FIELDS = (
    "match_merchant",
    "match_description",
    "match_account_id",
    "rule_description",
    "auto_apply",
    "is_active",
)


def _as_dict(row) -> dict:
    return dict(row._mapping) if row is not None else None


class LedgerStore:
    """Read/write operations over the ledger tables.

    Every call runs in its own transaction unless it happens inside
    ``atomic()``, in which case all calls share one transaction that commits
    or rolls back as a unit. Writers are serialized by a re-entrant lock.
    """

    def __init__(self, engine: Engine):
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine
        """
        self.engine = engine
        self._local = threading.local()
        self._lock = threading.RLock()

    def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        metadata.create_all(self.engine)

    @contextmanager
    def atomic(self) -> Iterator["LedgerStore"]:
        """Group several operations into one all-or-nothing unit."""
        if getattr(self._local, "conn", None) is not None:
            yield self
            return

        with self._lock:
            with self.engine.begin() as conn:
                self._local.conn = conn
                try:
                    yield self
                finally:
                    self._local.conn = None

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            yield conn
            return

        with self._lock:
            with self.engine.begin() as conn:
                yield conn

    def _fetch_one(self, query) -> dict | None:
        with self._connect() as conn:
            return _as_dict(conn.execute(query).first())

    def _fetch_all(self, query) -> list[dict]:
        with self._connect() as conn:
            return [_as_dict(row) for row in conn.execute(query)]

    def _insert(self, table: Table, values: dict) -> int:
        with self._connect() as conn:
            result = conn.execute(insert(table).values(**values))
            return result.inserted_primary_key[0]

    def _update(self, table: Table, row_id: int, values: dict) -> bool:
        with self._connect() as conn:
            result = conn.execute(
                update(table).where(table.c.id == row_id).values(**values)
            )
            return result.rowcount > 0

    def _delete(self, table: Table, row_id: int) -> bool:
        with self._connect() as conn:
            result = conn.execute(delete(table).where(table.c.id == row_id))
            return result.rowcount > 0

    # Accounts

    def list_accounts(self) -> list[dict]:
        return self._fetch_all(select(accounts).order_by(accounts.c.id))

    def get_account(self, account_id: int) -> dict | None:
        return self._fetch_one(select(accounts).where(accounts.c.id == account_id))

    def find_account_by_name(self, name: str) -> dict | None:
        """Find an account by case-insensitive name."""
        return self._fetch_one(
            select(accounts)
            .where(func.lower(accounts.c.name) == name.lower())
            .order_by(accounts.c.id)
        )

    def create_account(self, name: str, account_type: str, institution: str | None = None) -> int:
        return self._insert(
            accounts, {"name": name, "type": account_type, "institution": institution}
        )

    # Transactions

    def insert_transactions(self, rows: list[dict]) -> list[int]:
        """Insert a batch of transactions in one transaction.

        Args:
            rows: Transaction dictionaries (date, description, amount, ...)

        Returns:
            Inserted ids, in input order
        """
        ids = []
        with self.atomic():
            for row in rows:
                values = {k: v for k, v in row.items() if k in transactions.c}
                values["amount"] = to_money(values["amount"])
                values["fingerprint"] = transaction_fingerprint(
                    values["date"], values["amount"], values["description"]
                )
                ids.append(self._insert(transactions, values))
        return ids

    def get_transaction(self, transaction_id: int) -> dict | None:
        return self._fetch_one(
            select(transactions).where(transactions.c.id == transaction_id)
        )

    def list_transactions(self, account_id: int | None = None, limit: int | None = None) -> list[dict]:
        query = select(transactions).order_by(transactions.c.date.desc(), transactions.c.id.desc())
        if account_id is not None:
            query = query.where(transactions.c.account_id == account_id)
        if limit is not None:
            query = query.limit(limit)
        return self._fetch_all(query)

    def transaction_exists(self, fingerprint: str) -> bool:
        """Check whether any persisted transaction carries this fingerprint."""
        row = self._fetch_one(
            select(transactions.c.id).where(transactions.c.fingerprint == fingerprint).limit(1)
        )
        return row is not None

    def update_transaction(self, transaction_id: int, updates: dict) -> bool:
        """Update editable transaction fields, keeping the fingerprint in sync."""
        values = {k: v for k, v in updates.items() if k in TRANSACTION_UPDATE_FIELDS}
        if not values:
            return self.get_transaction(transaction_id) is not None

        with self.atomic():
            existing = self.get_transaction(transaction_id)
            if existing is None:
                return False

            if "amount" in values:
                values["amount"] = to_money(values["amount"])
            if {"date", "amount", "description"} & values.keys():
                merged = {**existing, **values}
                values["fingerprint"] = transaction_fingerprint(
                    merged["date"], merged["amount"], merged["description"]
                )
            return self._update(transactions, transaction_id, values)

    def delete_transaction(self, transaction_id: int) -> bool:
        return self._delete(transactions, transaction_id)

    # Categories

    def list_category_names(self) -> list[str]:
        rows = self._fetch_all(select(categories.c.name).order_by(categories.c.id))
        return [row["name"] for row in rows]

    def add_category(self, name: str, color: str | None = None, icon: str | None = None) -> int:
        return self._insert(categories, {"name": name, "color": color, "icon": icon})

    # Preferences

    def list_preferences(self) -> list[dict]:
        """All preferences, most recently updated first."""
        return self._fetch_all(
            select(user_preferences).order_by(
                user_preferences.c.updated_at.desc(), user_preferences.c.id.desc()
            )
        )

    def get_preference(self, preference_id: int) -> dict | None:
        return self._fetch_one(
            select(user_preferences).where(user_preferences.c.id == preference_id)
        )

    def add_preference(self, instruction: str, source: str = "user") -> int:
        now = datetime.now()
        return self._insert(
            user_preferences,
            {"instruction": instruction, "source": source, "created_at": now, "updated_at": now},
        )

    def update_preference(self, preference_id: int, instruction: str) -> bool:
        return self._update(
            user_preferences,
            preference_id,
            {"instruction": instruction, "updated_at": datetime.now()},
        )

    def delete_preference(self, preference_id: int) -> bool:
        return self._delete(user_preferences, preference_id)

    def upsert_learned_preference(self, merchant_key: str, instruction: str) -> int:
        """Insert or replace the single learned instruction for a merchant.

        Returns:
            Preference id
        """
        with self.atomic():
            existing = self._fetch_one(
                select(user_preferences).where(user_preferences.c.merchant_key == merchant_key)
            )
            now = datetime.now()
            if existing:
                self._update(
                    user_preferences,
                    existing["id"],
                    {"instruction": instruction, "source": "learned", "updated_at": now},
                )
                return existing["id"]

            return self._insert(
                user_preferences,
                {
                    "instruction": instruction,
                    "source": "learned",
                    "merchant_key": merchant_key,
                    "created_at": now,
                    "updated_at": now,
                },
            )

    # AI settings

    def get_ai_setting(self, key: str) -> str | None:
        row = self._fetch_one(select(ai_settings).where(ai_settings.c.setting_key == key))
        return row["setting_value"] if row else None

    def set_ai_setting(self, key: str, value: str) -> None:
        with self.atomic():
            row = self._fetch_one(select(ai_settings).where(ai_settings.c.setting_key == key))
            if row:
                self._update(
                    ai_settings, row["id"], {"setting_value": value, "updated_at": datetime.now()}
                )
            else:
                self._insert(ai_settings, {"setting_key": key, "setting_value": value})

    def delete_ai_setting(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute(delete(ai_settings).where(ai_settings.c.setting_key == key))

    # Liabilities

    def create_liability(
        self,
        name: str,
        liability_type: str,
        original_amount,
        current_balance=None,
        interest_rate=None,
        monthly_payment=None,
        notes: str | None = None,
    ) -> int:
        original = to_money(original_amount)
        return self._insert(
            liabilities,
            {
                "name": name,
                "type": liability_type,
                "original_amount": original,
                "current_balance": to_money(current_balance) if current_balance is not None else original,
                "interest_rate": interest_rate,
                "monthly_payment": to_money(monthly_payment) if monthly_payment is not None else None,
                "notes": notes,
            },
        )

    def list_liabilities(self) -> list[dict]:
        return self._fetch_all(select(liabilities).order_by(liabilities.c.id))

    def get_liability(self, liability_id: int) -> dict | None:
        return self._fetch_one(select(liabilities).where(liabilities.c.id == liability_id))

    def set_liability_balance(self, liability_id: int, balance: Decimal) -> bool:
        return self._update(
            liabilities,
            liability_id,
            {"current_balance": to_money(balance), "updated_at": datetime.now()},
        )

    # Liability payment rules

    def create_rule(self, liability_id: int, **fields: Any) -> int:
        values = {k: v for k, v in fields.items() if k in RULE_UPDATE_FIELDS}
        values["liability_id"] = liability_id
        return self._insert(liability_payment_rules, values)

    def get_rule(self, rule_id: int) -> dict | None:
        return self._fetch_one(
            select(liability_payment_rules).where(liability_payment_rules.c.id == rule_id)
        )

    def list_rules(self, liability_id: int | None = None, active_only: bool = False) -> list[dict]:
        """Rules in creation order."""
        query = select(liability_payment_rules).order_by(liability_payment_rules.c.id)
        if liability_id is not None:
            query = query.where(liability_payment_rules.c.liability_id == liability_id)
        if active_only:
            query = query.where(liability_payment_rules.c.is_active.is_(True))
        return self._fetch_all(query)

    def update_rule(self, rule_id: int, updates: dict) -> bool:
        values = {k: v for k, v in updates.items() if k in RULE_UPDATE_FIELDS}
        if not values:
            return self.get_rule(rule_id) is not None
        return self._update(liability_payment_rules, rule_id, values)

    def delete_rule(self, rule_id: int) -> bool:
        return self._delete(liability_payment_rules, rule_id)

    # Liability payments

    def create_payment(
        self,
        transaction_id: int,
        liability_id: int,
        status: str,
        amount,
        rule_id: int | None = None,
    ) -> int:
        now = datetime.now()
        return self._insert(
            liability_payments,
            {
                "transaction_id": transaction_id,
                "liability_id": liability_id,
                "rule_id": rule_id,
                "status": status,
                "amount": to_money(amount),
                "created_at": now,
                "updated_at": now,
            },
        )

    def get_payment(self, payment_id: int) -> dict | None:
        return self._fetch_one(
            select(liability_payments).where(liability_payments.c.id == payment_id)
        )

    def get_active_payment(self, transaction_id: int) -> dict | None:
        """The non-reversed payment for a transaction, if any."""
        return self._fetch_one(
            select(liability_payments)
            .where(liability_payments.c.transaction_id == transaction_id)
            .where(liability_payments.c.status != "reversed")
            .order_by(liability_payments.c.id.desc())
        )

    def list_payments(self, liability_id: int | None = None, status: str | None = None) -> list[dict]:
        query = select(liability_payments).order_by(liability_payments.c.id.desc())
        if liability_id is not None:
            query = query.where(liability_payments.c.liability_id == liability_id)
        if status is not None:
            query = query.where(liability_payments.c.status == status)
        return self._fetch_all(query)

    def list_payments_for_transaction(self, transaction_id: int) -> list[dict]:
        return self._fetch_all(
            select(liability_payments)
            .where(liability_payments.c.transaction_id == transaction_id)
            .order_by(liability_payments.c.id)
        )

    def update_payment(self, payment_id: int, status: str | None = None, amount=None) -> bool:
        values: dict[str, Any] = {"updated_at": datetime.now()}
        if status is not None:
            values["status"] = status
        if amount is not None:
            values["amount"] = to_money(amount)
        return self._update(liability_payments, payment_id, values)

    def count_pending_payments(self, liability_id: int | None = None) -> int:
        query = select(func.count()).select_from(liability_payments).where(
            liability_payments.c.status == "pending"
        )
        if liability_id is not None:
            query = query.where(liability_payments.c.liability_id == liability_id)
        with self._connect() as conn:
            return conn.execute(query).scalar_one()

    # Statement uploads

    def create_statement_upload(
        self,
        account_id: int,
        period_start: str,
        period_end: str,
        filename: str | None = None,
        transaction_count: int | None = None,
    ) -> int:
        return self._insert(
            statement_uploads,
            {
                "account_id": account_id,
                "period_start": period_start,
                "period_end": period_end,
                "filename": filename,
                "transaction_count": transaction_count,
            },
        )

    def list_statement_uploads(self, account_id: int | None = None) -> list[dict]:
        query = select(statement_uploads).order_by(statement_uploads.c.period_start)
        if account_id is not None:
            query = query.where(statement_uploads.c.account_id == account_id)
        return self._fetch_all(query)
