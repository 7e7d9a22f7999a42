"""
Robinhood CSV Parser

Parses Robinhood account activity exports:
Activity Date,Process Date,Settle Date,Instrument,Description,Trans Code,Quantity,Price,Amount
"""

from .base import BaseCSVParser, ColumnMap, ParsedTransaction


class RobinhoodParser(BaseCSVParser):
    """Parser for Robinhood brokerage CSV exports."""

    NAME = "Robinhood"
    INSTITUTION = "Robinhood"
    ACCOUNT_TYPE = "brokerage"

    INCOME_CODES = ("div", "int", "interest")

    def detect(self, headers: list[str], sample_rows: list[list[str]]) -> bool:
        columns = ColumnMap(headers)
        if "activity date" not in columns:
            return False

        has_trans_code = columns.has_any("trans code", "transaction type")
        has_instrument = columns.has_any("instrument", "symbol")
        return has_trans_code or (has_instrument and "description" in columns)

    def _parse_row(self, columns: ColumnMap, row: list[str]) -> ParsedTransaction | None:
        raw_date = columns.value(row, columns.index("activity date", "date"))
        raw_amount = columns.value(row, columns.index("amount"))

        if not raw_date or not raw_amount:
            return None

        instrument = columns.value(row, columns.index("instrument", "symbol"))
        trans_code = columns.value(row, columns.index("trans code", "transaction type"))
        description = columns.value(row, columns.index("description"))

        if not description:
            description = self._build_description(columns, row, instrument, trans_code)
        if not description:
            return None

        return ParsedTransaction(
            date=self._parse_date(raw_date),
            description=description,
            amount=self._parse_amount(raw_amount),
            category=self._category_for_code(trans_code),
            merchant=f"Robinhood - {instrument}" if instrument else "Robinhood",
            raw_data=columns.raw_record(row),
        )

    def _build_description(
        self,
        columns: ColumnMap,
        row: list[str],
        instrument: str | None,
        trans_code: str | None,
    ) -> str | None:
        """Synthesize a description from trade fields when the export has none."""
        if instrument and trans_code:
            description = f"{trans_code}: {instrument}"
            quantity = columns.value(row, columns.index("quantity"))
            price = columns.value(row, columns.index("price"))
            if quantity and price:
                description += f" ({quantity} @ {price})"
            return description

        return trans_code

    def _category_for_code(self, trans_code: str | None) -> str:
        if trans_code and trans_code.lower().startswith(self.INCOME_CODES):
            return "Income"
        return "Financial"
