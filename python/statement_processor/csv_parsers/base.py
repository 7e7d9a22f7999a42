"""
Base CSV Parser Module

Canonical transaction types, the column mapper, and the abstract base class
for institution-specific CSV parsers.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)

ACCOUNT_TYPES = ("credit_card", "bank", "brokerage")

# Descriptions of a card payment posted to the card account itself
CARD_PAYMENT_PATTERNS = [
    r"payment\s*-?\s*thank\s*you",
    r"autopay\s+payment",
    r"online\s+payment",
]


@dataclass
class ParsedTransaction:
    """A transaction in canonical form: ISO date, outflow-negative amount."""

    date: str
    description: str
    amount: Decimal
    category: str | None = None
    subcategory: str | None = None
    merchant: str | None = None
    is_transfer: bool = False
    raw_data: dict = field(default_factory=dict)

    @property
    def is_expense(self) -> bool:
        return self.amount < 0

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "description": self.description,
            "amount": float(self.amount),
            "category": self.category,
            "subcategory": self.subcategory,
            "merchant": self.merchant,
            "is_transfer": self.is_transfer,
            "raw_data": self.raw_data,
        }


@dataclass
class ParseResult:
    """Result of parsing a statement."""

    success: bool
    transactions: list[ParsedTransaction] = field(default_factory=list)
    account_type: str = "bank"
    institution: str = "Unknown"
    error: str | None = None
    parser_name: str | None = None
    statement_period_start: str | None = None
    statement_period_end: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)

    @classmethod
    def failure(cls, error: str, account_type: str = "bank", institution: str = "Unknown") -> "ParseResult":
        """A non-success result carrying no transactions."""
        return cls(success=False, account_type=account_type, institution=institution, error=error)


@dataclass
class DetectionResult:
    """Format detection outcome, used only for preview labeling."""

    detected: bool
    parser_name: str = "Unknown"
    institution: str = "Unknown"


class ColumnMap:
    """Case- and whitespace-insensitive header lookup."""

    def __init__(self, headers: list[str]):
        self.headers = list(headers)
        self._index: dict[str, int] = {}
        for i, header in enumerate(headers):
            key = self.normalize(header)
            # First occurrence wins for repeated headers
            self._index.setdefault(key, i)

    @staticmethod
    def normalize(header: str) -> str:
        return " ".join((header or "").replace("\ufeff", "").split()).lower()

    def __contains__(self, name: str) -> bool:
        return self.normalize(name) in self._index

    def has_any(self, *names: str) -> bool:
        return any(name in self for name in names)

    def has_all(self, *names: str) -> bool:
        return all(name in self for name in names)

    def index(self, *candidates: str) -> int | None:
        """Index of the first candidate header present, or None."""
        for candidate in candidates:
            idx = self._index.get(self.normalize(candidate))
            if idx is not None:
                return idx
        return None

    def index_containing(self, fragment: str) -> int | None:
        """Index of the first header containing a fragment."""
        fragment = self.normalize(fragment)
        for key, idx in self._index.items():
            if fragment in key:
                return idx
        return None

    def search(self, patterns: list[str]) -> int | None:
        """Index of the first header matching any regex pattern."""
        for pattern in patterns:
            for i, header in enumerate(self.headers):
                if re.search(pattern, self.normalize(header)):
                    return i
        return None

    @staticmethod
    def value(row: list[str], idx: int | None) -> str | None:
        """Stripped cell value, or None when absent or blank."""
        if idx is None or idx >= len(row):
            return None
        cell = (row[idx] or "").strip()
        return cell or None

    def raw_record(self, row: list[str]) -> dict:
        return {
            header: row[i] if i < len(row) else ""
            for i, header in enumerate(self.headers)
        }


class BaseCSVParser(ABC):
    """Abstract base class for institution CSV parsers."""

    NAME: str = "Unknown"
    INSTITUTION: str = "Unknown"
    ACCOUNT_TYPE: str = "bank"

    # Accepted date formats; output is always YYYY-MM-DD
    DATE_FORMATS = [
        "%m/%d/%Y",
        "%Y-%m-%d",
    ]

    # Institution category (lowercase) -> canonical category
    CATEGORY_MAP: dict[str, str] = {}

    @abstractmethod
    def detect(self, headers: list[str], sample_rows: list[list[str]]) -> bool:
        """Check whether headers/rows look like this institution's export.

        Args:
            headers: Header row
            sample_rows: First few data rows

        Returns:
            True if this parser should handle the file
        """

    def parse(self, headers: list[str], rows: list[list[str]]) -> ParseResult:
        """Parse data rows into canonical transactions.

        Rows that fail to parse are skipped; the file still succeeds.

        Args:
            headers: Header row
            rows: Data rows

        Returns:
            ParseResult
        """
        columns = ColumnMap(headers)
        result = ParseResult(
            success=True,
            account_type=self.ACCOUNT_TYPE,
            institution=self.INSTITUTION,
            parser_name=self.NAME,
        )

        for row_num, row in enumerate(rows, start=2):
            try:
                transaction = self._parse_row(columns, row)
                if transaction:
                    result.transactions.append(transaction)
            except ValueError as e:
                logger.debug(f"{self.NAME} row {row_num} skipped: {e}")
                result.warnings.append(f"Row {row_num}: {e}")

        return result

    @abstractmethod
    def _parse_row(self, columns: ColumnMap, row: list[str]) -> ParsedTransaction | None:
        """Parse a single row.

        Args:
            columns: Column map for the file's headers
            row: Cell values

        Returns:
            ParsedTransaction, or None if the row should be dropped

        Raises:
            ValueError: If the row is malformed
        """

    def _parse_date(self, date_str: str) -> str:
        """Parse a date string into YYYY-MM-DD.

        Raises:
            ValueError: If no accepted format matches
        """
        date_str = date_str.strip()

        for fmt in self.DATE_FORMATS:
            try:
                return datetime.strptime(date_str, fmt).strftime("%Y-%m-%d")
            except ValueError:
                continue

        raise ValueError(f"Cannot parse date: {date_str}")

    def _parse_amount(self, amount_str: str) -> Decimal:
        """Parse an amount string to Decimal.

        Currency symbols, thousand separators and whitespace are stripped;
        parentheses or a leading minus mean negative.

        Raises:
            ValueError: If the amount cannot be parsed
        """
        if not amount_str or amount_str.strip() == "":
            raise ValueError("Missing amount")

        cleaned = re.sub(r"[$,\s]", "", amount_str)

        is_negative = False
        if cleaned.startswith("(") and cleaned.endswith(")"):
            cleaned = cleaned[1:-1]
            is_negative = True
        if cleaned.startswith("-"):
            cleaned = cleaned[1:]
            is_negative = not is_negative
        elif cleaned.startswith("+"):
            cleaned = cleaned[1:]

        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            raise ValueError(f"Cannot parse amount: {amount_str}")

        if not amount.is_finite():
            raise ValueError(f"Cannot parse amount: {amount_str}")

        return -amount if is_negative else amount

    def _map_category(self, institution_category: str | None) -> str | None:
        """Map an institution category string; unmapped values stay unset."""
        if not institution_category:
            return None
        return self.CATEGORY_MAP.get(institution_category.strip().lower())

    @staticmethod
    def _is_card_payment(description: str, txn_type: str | None = None) -> bool:
        """Check for a payment made to the card account itself."""
        if txn_type and txn_type.strip().lower() == "payment":
            return True
        desc = description.lower()
        return any(re.search(pattern, desc) for pattern in CARD_PAYMENT_PATTERNS)
