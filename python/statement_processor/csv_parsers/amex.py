"""
American Express CSV Parser

Parses Amex activity exports. Two layouts are common:
Date,Description,Card Member,Account #,Amount
Date,Description,Amount,Extended Details,Appears On Your Statement As,...,Category
"""

from .base import BaseCSVParser, ColumnMap, ParsedTransaction


class AmexParser(BaseCSVParser):
    """Parser for American Express CSV exports."""

    NAME = "American Express"
    INSTITUTION = "American Express"
    ACCOUNT_TYPE = "credit_card"

    # Amex categories look like "Restaurant-Bar & Café"; matched by substring
    CATEGORY_MAP = {
        "restaurant": "Food",
        "groceries": "Groceries",
        "supermarket": "Groceries",
        "gas station": "Transportation",
        "airline": "Travel",
        "hotel": "Travel",
        "merchandise & supplies": "Shopping",
        "entertainment": "Entertainment",
        "medical services": "Health",
        "pharmacy": "Health",
        "business services": "Other",
        "utilities": "Housing",
        "fees & interest charges": "Financial",
    }

    def detect(self, headers: list[str], sample_rows: list[list[str]]) -> bool:
        columns = ColumnMap(headers)
        if not columns.has_all("date", "description", "amount"):
            return False
        return (
            columns.has_any("card member", "cardmember", "reference")
            or columns.index_containing("appears on your statement") is not None
        )

    def _parse_row(self, columns: ColumnMap, row: list[str]) -> ParsedTransaction | None:
        raw_date = columns.value(row, columns.index("date"))
        description = columns.value(row, columns.index("description"))
        raw_amount = columns.value(row, columns.index("amount"))

        if not raw_date or not description or not raw_amount:
            return None

        if self._is_card_payment(description):
            return None

        # Amex reports charges as positive
        amount = -self._parse_amount(raw_amount)

        return ParsedTransaction(
            date=self._parse_date(raw_date),
            description=description,
            amount=amount,
            category=self._map_category(columns.value(row, columns.index("category"))),
            merchant=columns.value(row, columns.index_containing("appears on your statement")),
            raw_data=columns.raw_record(row),
        )

    def _map_category(self, institution_category: str | None) -> str | None:
        if not institution_category:
            return None

        normalized = institution_category.strip().lower()
        for key, category in self.CATEGORY_MAP.items():
            if key in normalized:
                return category
        return None
