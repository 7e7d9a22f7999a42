"""
Chase CSV Parser

Parses Chase credit card activity exports:
Transaction Date,Post Date,Description,Category,Type,Amount,Memo
"""

from .base import BaseCSVParser, ColumnMap, ParsedTransaction


class ChaseParser(BaseCSVParser):
    """Parser for Chase credit card CSV exports."""

    NAME = "Chase Credit Card"
    INSTITUTION = "Chase"
    ACCOUNT_TYPE = "credit_card"

    CATEGORY_MAP = {
        "food & drink": "Food",
        "groceries": "Groceries",
        "gas": "Transportation",
        "travel": "Travel",
        "shopping": "Shopping",
        "entertainment": "Entertainment",
        "health & wellness": "Health",
        "professional services": "Other",
        "personal": "Other",
        "bills & utilities": "Housing",
        "home": "Housing",
        "fees & adjustments": "Financial",
    }

    def detect(self, headers: list[str], sample_rows: list[list[str]]) -> bool:
        columns = ColumnMap(headers)
        return (
            columns.has_all("transaction date", "description", "amount")
            and columns.has_any("category", "type")
        )

    def _parse_row(self, columns: ColumnMap, row: list[str]) -> ParsedTransaction | None:
        raw_date = columns.value(row, columns.index("transaction date", "trans date"))
        description = columns.value(row, columns.index("description"))
        raw_amount = columns.value(row, columns.index("amount"))

        if not raw_date or not description or not raw_amount:
            return None

        txn_type = columns.value(row, columns.index("type"))
        if self._is_card_payment(description, txn_type):
            return None

        # Chase already reports purchases as negative
        return ParsedTransaction(
            date=self._parse_date(raw_date),
            description=description,
            amount=self._parse_amount(raw_amount),
            category=self._map_category(columns.value(row, columns.index("category"))),
            raw_data=columns.raw_record(row),
        )
