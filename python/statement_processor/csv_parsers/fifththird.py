"""
Fifth Third Bank CSV Parser

Parses checking/savings exports with a running balance:
Date,Description,Debit,Credit,Balance
Date,Description,Amount,Balance
"""

from decimal import Decimal

from .base import BaseCSVParser, ColumnMap, ParsedTransaction


class FifthThirdParser(BaseCSVParser):
    """Parser for Fifth Third Bank CSV exports."""

    NAME = "Fifth Third Bank"
    INSTITUTION = "Fifth Third Bank"
    ACCOUNT_TYPE = "bank"

    def detect(self, headers: list[str], sample_rows: list[list[str]]) -> bool:
        columns = ColumnMap(headers)
        has_date = columns.has_any("date", "posted date")
        has_description = columns.has_any("description", "memo")
        has_amount = "amount" in columns or columns.has_all("debit", "credit")
        has_balance = columns.has_any("balance", "running balance")

        return has_date and has_description and has_amount and has_balance

    def _parse_row(self, columns: ColumnMap, row: list[str]) -> ParsedTransaction | None:
        raw_date = columns.value(row, columns.index("date", "posted date"))
        description = columns.value(row, columns.index("description", "memo"))

        if not raw_date or not description:
            return None

        debit_idx = columns.index("debit")
        credit_idx = columns.index("credit")

        if debit_idx is not None and credit_idx is not None:
            debit = columns.value(row, debit_idx)
            credit = columns.value(row, credit_idx)
            if not debit and not credit:
                return None
            # Either column may carry its own sign; direction comes from the column
            amount = (
                abs(self._parse_amount(credit)) if credit else Decimal("0")
            ) - (abs(self._parse_amount(debit)) if debit else Decimal("0"))
        else:
            raw_amount = columns.value(row, columns.index("amount"))
            if not raw_amount:
                return None
            amount = self._parse_amount(raw_amount)

        return ParsedTransaction(
            date=self._parse_date(raw_date),
            description=description,
            amount=amount,
            raw_data=columns.raw_record(row),
        )
