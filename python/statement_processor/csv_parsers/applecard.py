"""
Apple Card CSV Parser

Parses Apple Card monthly exports:
Transaction Date,Clearing Date,Description,Merchant,Category,Type,Amount (USD),Purchased By
"""

import re

from .base import BaseCSVParser, ColumnMap, ParsedTransaction


class AppleCardParser(BaseCSVParser):
    """Parser for Apple Card CSV exports."""

    NAME = "Apple Card"
    INSTITUTION = "Apple Card"
    ACCOUNT_TYPE = "credit_card"

    CATEGORY_MAP = {
        "food & drink": "Food",
        "restaurants": "Food",
        "grocery": "Groceries",
        "groceries": "Groceries",
        "transportation": "Transportation",
        "gas": "Transportation",
        "travel": "Travel",
        "airlines": "Travel",
        "hotels": "Travel",
        "shopping": "Shopping",
        "entertainment": "Entertainment",
        "health": "Health",
        "medical": "Health",
        "home": "Housing",
        "utilities": "Housing",
        "services": "Other",
        "other": "Other",
    }

    def detect(self, headers: list[str], sample_rows: list[list[str]]) -> bool:
        columns = ColumnMap(headers)
        return columns.has_all("transaction date", "merchant", "amount (usd)", "purchased by")

    def _parse_row(self, columns: ColumnMap, row: list[str]) -> ParsedTransaction | None:
        raw_date = columns.value(row, columns.index("transaction date"))
        description = columns.value(row, columns.index("description"))
        raw_amount = columns.value(row, columns.index("amount (usd)"))

        if not raw_date or not description or not raw_amount:
            return None

        if self._is_card_payment(description, columns.value(row, columns.index("type"))):
            return None

        # Purchases are positive in the export
        amount = -self._parse_amount(raw_amount)

        return ParsedTransaction(
            date=self._parse_date(raw_date),
            description=description,
            amount=amount,
            category=self._map_category(columns.value(row, columns.index("category"))),
            merchant=self._clean_merchant(columns.value(row, columns.index("merchant"))),
            raw_data=columns.raw_record(row),
        )

    def _clean_merchant(self, merchant: str | None) -> str | None:
        """Collapse whitespace and title-case all-caps names."""
        if not merchant:
            return None

        cleaned = re.sub(r"\s+", " ", merchant).strip()
        if cleaned == cleaned.upper():
            cleaned = cleaned.title()

        return cleaned
