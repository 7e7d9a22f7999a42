"""
Generic CSV Parser

Best-effort parser that sniffs date, description and amount columns for
unknown formats, plus the parser chain entry points.
"""

import csv
import logging
from decimal import Decimal
from io import StringIO

from .amex import AmexParser
from .applecard import AppleCardParser
from .base import BaseCSVParser, ColumnMap, DetectionResult, ParsedTransaction, ParseResult
from .chase import ChaseParser
from .fifththird import FifthThirdParser
from .robinhood import RobinhoodParser

logger = logging.getLogger(__name__)

DETECTION_PREVIEW_ROWS = 5


class GenericParser(BaseCSVParser):
    """Fallback parser with column auto-detection."""

    NAME = "Generic CSV"
    INSTITUTION = "Unknown"
    ACCOUNT_TYPE = "bank"

    DATE_FORMATS = [
        "%m/%d/%Y",
        "%Y-%m-%d",
        "%m-%d-%Y",
    ]

    # Exact header names, tried in order
    DATE_COLUMNS = ["date", "transaction date", "trans date", "posted date", "post date"]
    DESCRIPTION_COLUMNS = ["description", "memo", "narrative", "details", "payee"]
    AMOUNT_COLUMNS = ["amount", "transaction amount", "value"]
    DEBIT_COLUMNS = ["debit", "withdrawal", "withdrawals"]
    CREDIT_COLUMNS = ["credit", "deposit", "deposits"]

    # Looser header patterns used when no exact name is present
    DATE_PATTERNS = [r"\bdate\b"]
    DESCRIPTION_PATTERNS = [r"description", r"payee", r"merchant", r"details", r"memo"]
    AMOUNT_PATTERNS = [r"\bamount\b"]
    DEBIT_PATTERNS = [r"\bdebit", r"withdrawal"]
    CREDIT_PATTERNS = [r"\bcredit", r"deposit"]

    def _auto_detect_columns(self, columns: ColumnMap) -> dict[str, int]:
        """Map field types to column indexes.

        Args:
            columns: Column map for the file's headers

        Returns:
            Dictionary of field type -> column index for the fields found
        """
        candidates = {
            "date": (self.DATE_COLUMNS, self.DATE_PATTERNS),
            "description": (self.DESCRIPTION_COLUMNS, self.DESCRIPTION_PATTERNS),
            "amount": (self.AMOUNT_COLUMNS, self.AMOUNT_PATTERNS),
            "debit": (self.DEBIT_COLUMNS, self.DEBIT_PATTERNS),
            "credit": (self.CREDIT_COLUMNS, self.CREDIT_PATTERNS),
        }

        mapping = {}
        for field_type, (names, patterns) in candidates.items():
            idx = columns.index(*names)
            if idx is None:
                idx = columns.search(patterns)
            if idx is not None:
                mapping[field_type] = idx

        return mapping

    def _missing_column_error(self, mapping: dict[str, int]) -> str | None:
        if "date" not in mapping:
            return "Could not find date column in CSV"
        if "description" not in mapping:
            return "Could not find description column in CSV"
        if "amount" not in mapping and not ("debit" in mapping and "credit" in mapping):
            return "Could not find amount column(s) in CSV"
        return None

    def detect(self, headers: list[str], sample_rows: list[list[str]]) -> bool:
        mapping = self._auto_detect_columns(ColumnMap(headers))
        return self._missing_column_error(mapping) is None

    def parse(self, headers: list[str], rows: list[list[str]]) -> ParseResult:
        columns = ColumnMap(headers)
        self._column_mapping = self._auto_detect_columns(columns)

        error = self._missing_column_error(self._column_mapping)
        if error:
            return ParseResult.failure(error)

        result = super().parse(headers, rows)
        if not result.transactions:
            result.success = False
            result.error = "No valid transactions found"

        return result

    def _parse_row(self, columns: ColumnMap, row: list[str]) -> ParsedTransaction | None:
        mapping = self._column_mapping

        raw_date = columns.value(row, mapping["date"])
        description = columns.value(row, mapping["description"])

        if not raw_date or not description:
            return None

        raw_amount = columns.value(row, mapping.get("amount"))
        if raw_amount:
            amount = self._parse_amount(raw_amount)
        else:
            debit = columns.value(row, mapping.get("debit"))
            credit = columns.value(row, mapping.get("credit"))
            if not debit and not credit:
                return None
            amount = (
                abs(self._parse_amount(credit)) if credit else Decimal("0")
            ) - (abs(self._parse_amount(debit)) if debit else Decimal("0"))

        return ParsedTransaction(
            date=self._parse_date(raw_date),
            description=description,
            amount=amount,
            raw_data=columns.raw_record(row),
        )


# Most specific first; header sets overlap
PARSER_CHAIN: tuple[BaseCSVParser, ...] = (
    ChaseParser(),
    AmexParser(),
    AppleCardParser(),
    RobinhoodParser(),
    FifthThirdParser(),
)


def read_csv_rows(content: str, limit: int | None = None) -> list[list[str]]:
    """Tokenize CSV content, dropping blank lines.

    Args:
        content: CSV text
        limit: Maximum number of rows to return (header included)

    Returns:
        Rows of cell values

    Raises:
        csv.Error: If the content is not valid CSV
    """
    if content.startswith("\ufeff"):
        content = content[1:]

    rows = []
    for row in csv.reader(StringIO(content)):
        if not any(cell.strip() for cell in row):
            continue
        rows.append(row)
        if limit is not None and len(rows) >= limit:
            break

    return rows


def detect_csv_format(content: str) -> DetectionResult:
    """Run only the detect step of the chain, for preview labeling.

    Args:
        content: CSV text

    Returns:
        DetectionResult
    """
    try:
        rows = read_csv_rows(content, limit=DETECTION_PREVIEW_ROWS + 1)
    except csv.Error:
        return DetectionResult(detected=False)

    if len(rows) < 2:
        return DetectionResult(detected=False)

    headers, sample_rows = rows[0], rows[1:]
    for parser in PARSER_CHAIN:
        if parser.detect(headers, sample_rows):
            return DetectionResult(
                detected=True,
                parser_name=parser.NAME,
                institution=parser.INSTITUTION,
            )

    return DetectionResult(detected=False)


def parse_csv(content: str) -> ParseResult:
    """Parse CSV content through the institution chain, then the fallback.

    A parser that detects the file but yields no transactions does not end
    the search.

    Args:
        content: CSV text

    Returns:
        ParseResult; on failure it carries no transactions and an error
    """
    try:
        rows = read_csv_rows(content)
    except csv.Error as e:
        return ParseResult.failure(f"CSV parsing error: {e}")

    if len(rows) < 2:
        return ParseResult.failure("CSV file is empty or has no data rows")

    headers, data_rows = rows[0], rows[1:]
    sample_rows = data_rows[:DETECTION_PREVIEW_ROWS]

    for parser in PARSER_CHAIN:
        if not parser.detect(headers, sample_rows):
            continue

        result = parser.parse(headers, data_rows)
        if result.transactions:
            logger.info(f"Parsed {result.transaction_count} transactions with {parser.NAME}")
            return result

        logger.info(f"{parser.NAME} matched headers but produced no transactions")

    result = GenericParser().parse(headers, data_rows)
    if result.success:
        logger.info(f"Parsed {result.transaction_count} transactions with generic fallback")
    else:
        logger.warning(f"Generic fallback failed: {result.error}")

    return result
