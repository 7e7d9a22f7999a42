"""
CSV Parser Tests

Tests for the column mapper, institution parsers, the generic fallback and
the parser chain entry points.
"""

import pytest
from decimal import Decimal
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "python"))

from statement_processor.csv_parsers import (
    AmexParser,
    AppleCardParser,
    ChaseParser,
    ColumnMap,
    FifthThirdParser,
    GenericParser,
    RobinhoodParser,
    detect_csv_format,
    parse_csv,
)


class TestColumnMap:
    """Tests for header normalization."""

    def test_case_and_whitespace_insensitive(self):
        """Test headers match regardless of case and spacing."""
        columns = ColumnMap(["  Transaction   DATE ", "Amount"])

        assert "transaction date" in columns
        assert columns.index("TRANSACTION DATE") == 0

    def test_byte_order_mark_stripped(self):
        """Test a BOM on the first header is ignored."""
        columns = ColumnMap(["\ufeffDate", "Amount"])

        assert columns.index("date") == 0

    def test_first_candidate_present_wins(self):
        """Test index returns the first candidate that exists."""
        columns = ColumnMap(["Memo", "Description"])

        assert columns.index("description", "memo") == 1

    def test_value_blank_is_none(self):
        """Test blank or missing cells read as None."""
        assert ColumnMap.value(["  "], 0) is None
        assert ColumnMap.value(["a"], 3) is None
        assert ColumnMap.value([" x "], 0) == "x"


class TestGenericParser:
    """Tests for the best-effort fallback parser."""

    def test_basic_date_description_amount(self, generic_csv):
        """Test the plain three-column layout keeps signs unchanged."""
        result = parse_csv(generic_csv)

        assert result.success is True
        assert result.parser_name == "Generic CSV"
        assert [t.date for t in result.transactions] == ["2024-01-15", "2024-01-16"]
        assert result.transactions[0].amount == Decimal("-4.50")
        assert result.transactions[1].amount == Decimal("2500.00")

    def test_iso_dates_accepted(self):
        """Test YYYY-MM-DD input is passed through."""
        result = parse_csv("Date,Description,Amount\n2024-03-01,RENT,-1800.00\n")

        assert result.transactions[0].date == "2024-03-01"

    def test_parentheses_mean_negative(self):
        """Test accounting-style negatives and currency symbols."""
        result = parse_csv('Date,Description,Amount\n01/02/2024,FEE,"($1,012.50)"\n')

        assert result.transactions[0].amount == Decimal("-1012.50")

    def test_debit_credit_columns(self):
        """Test separate debit and credit columns combine into one signed amount."""
        content = "Posted Date,Payee,Withdrawal,Deposit\n01/02/2024,GROCER,45.10,\n01/03/2024,REFUND,,12.00\n"
        result = parse_csv(content)

        assert result.success is True
        assert [t.amount for t in result.transactions] == [Decimal("-45.10"), Decimal("12.00")]

    def test_malformed_date_skips_row_only(self):
        """Test a bad date drops that row and is reported as a warning."""
        content = "Date,Description,Amount\n13/45/2024,BROKEN,-1.00\n01/05/2024,OK,-2.00\n"
        result = parse_csv(content)

        assert result.success is True
        assert len(result.transactions) == 1
        assert result.transactions[0].description == "OK"
        assert len(result.warnings) == 1

    def test_missing_amount_column_fails(self):
        """Test the fallback reports a missing amount column."""
        result = parse_csv("Date,Description,Notes\n01/01/2024,THING,hello\n")

        assert result.success is False
        assert result.transactions == []
        assert result.error == "Could not find amount column(s) in CSV"

    def test_missing_date_column_fails(self):
        """Test the fallback reports a missing date column."""
        result = parse_csv("Foo,Bar\n1,2\n")

        assert result.success is False
        assert result.error == "Could not find date column in CSV"

    def test_no_valid_rows_fails(self):
        """Test a file whose rows all fail is unparseable."""
        result = parse_csv("Date,Description,Amount\nnot a date,X,abc\n")

        assert result.success is False
        assert result.error == "No valid transactions found"

    def test_empty_file(self):
        """Test a header-only file."""
        result = parse_csv("Date,Description,Amount\n")

        assert result.success is False
        assert result.error == "CSV file is empty or has no data rows"

    def test_detect_requires_all_columns(self):
        """Test detect needs date, description and an amount-bearing column."""
        parser = GenericParser()

        assert parser.detect(["Date", "Description", "Amount"], []) is True
        assert parser.detect(["Date", "Description"], []) is False


class TestChaseParser:
    """Tests for the Chase credit card parser."""

    def test_detect(self, chase_csv):
        """Test Chase headers are recognized."""
        headers = chase_csv.splitlines()[0].split(",")

        assert ChaseParser().detect(headers, []) is True
        assert ChaseParser().detect(["Date", "Description", "Amount"], []) is False

    def test_parse(self, chase_csv):
        """Test purchases stay negative and card payments are dropped."""
        result = parse_csv(chase_csv)

        assert result.parser_name == "Chase Credit Card"
        assert result.institution == "Chase"
        assert result.account_type == "credit_card"
        assert len(result.transactions) == 2
        assert result.transactions[0].amount == Decimal("-6.75")
        assert result.transactions[0].category == "Food"
        assert result.transactions[1].category == "Transportation"

    def test_unmapped_category_stays_unset(self):
        """Test unknown institution categories are not guessed."""
        content = "Transaction Date,Description,Category,Amount\n01/15/2024,THING,Mystery,-1.00\n"
        result = parse_csv(content)

        assert result.transactions[0].category is None

    def test_matched_but_empty_falls_through(self):
        """Test a Chase file with only payments ends at the generic fallback."""
        content = (
            "Transaction Date,Post Date,Description,Category,Type,Amount,Memo\n"
            "01/17/2024,01/18/2024,AUTOMATIC PAYMENT - THANK,,Payment,1200.00,\n"
        )
        result = parse_csv(content)

        assert result.success is True
        assert result.parser_name == "Generic CSV"
        assert result.transactions[0].amount == Decimal("1200.00")


class TestAmexParser:
    """Tests for the American Express parser."""

    def test_charges_negated(self, amex_csv):
        """Test positive Amex charges become negative outflows."""
        result = parse_csv(amex_csv)

        assert result.parser_name == "American Express"
        assert len(result.transactions) == 1
        assert result.transactions[0].date == "2024-01-15"
        assert result.transactions[0].amount == Decimal("-25.00")

    def test_extended_layout(self):
        """Test the 'appears on your statement as' layout and category substrings."""
        content = (
            "Date,Description,Amount,Extended Details,Appears On Your Statement As,Category\n"
            "01/20/2024,BLUE BOTTLE 0042,5.25,Coffee,BLUE BOTTLE COFFEE,Restaurant-Bar & Cafe\n"
        )
        result = parse_csv(content)

        txn = result.transactions[0]
        assert txn.merchant == "BLUE BOTTLE COFFEE"
        assert txn.category == "Food"
        assert txn.amount == Decimal("-5.25")

    def test_detect_rejects_generic(self):
        """Test plain Date/Description/Amount is not claimed by Amex."""
        assert AmexParser().detect(["Date", "Description", "Amount"], []) is False


class TestAppleCardParser:
    """Tests for the Apple Card parser."""

    @pytest.fixture
    def sample_csv(self):
        """Sample Apple Card CSV content."""
        return (
            "Transaction Date,Clearing Date,Description,Merchant,Category,Type,Amount (USD),Purchased By\n"
            "01/10/2024,01/11/2024,UBER *TRIP HELP.UBER.COM,UBER   TRIP,Transportation,Purchase,15.20,Jane Doe\n"
            "01/12/2024,01/12/2024,ACH DEPOSIT INTERNET TRANSFER,Ach Deposit,Payment,Payment,-300.00,Jane Doe\n"
        )

    def test_parse(self, sample_csv):
        """Test negation, payment filtering and merchant cleanup."""
        result = parse_csv(sample_csv)

        assert result.parser_name == "Apple Card"
        assert len(result.transactions) == 1
        txn = result.transactions[0]
        assert txn.amount == Decimal("-15.20")
        assert txn.merchant == "Uber Trip"
        assert txn.category == "Transportation"

    def test_detect(self, sample_csv):
        """Test Apple Card needs the purchased-by column."""
        headers = sample_csv.splitlines()[0].split(",")

        assert AppleCardParser().detect(headers, []) is True
        assert AppleCardParser().detect(headers[:-1], []) is False


class TestRobinhoodParser:
    """Tests for the Robinhood brokerage parser."""

    @pytest.fixture
    def sample_csv(self):
        """Sample Robinhood CSV content."""
        return (
            "Activity Date,Process Date,Settle Date,Instrument,Description,Trans Code,Quantity,Price,Amount\n"
            "01/05/2024,01/05/2024,01/09/2024,AAPL,Apple Dividend,DIV,,,$1.23\n"
            '01/08/2024,01/08/2024,01/10/2024,MSFT,,Buy,2,$375.00,"($750.00)"\n'
        )

    def test_parse(self, sample_csv):
        """Test brokerage rows, dividend category and synthesized descriptions."""
        result = parse_csv(sample_csv)

        assert result.parser_name == "Robinhood"
        assert result.account_type == "brokerage"
        dividend, buy = result.transactions
        assert dividend.category == "Income"
        assert dividend.amount == Decimal("1.23")
        assert buy.amount == Decimal("-750.00")
        assert buy.description == "Buy: MSFT (2 @ $375.00)"
        assert buy.category == "Financial"
        assert buy.merchant == "Robinhood - MSFT"

    def test_detect(self):
        """Test Robinhood requires an activity date."""
        assert RobinhoodParser().detect(["Activity Date", "Trans Code", "Amount"], []) is True
        assert RobinhoodParser().detect(["Date", "Trans Code", "Amount"], []) is False


class TestFifthThirdParser:
    """Tests for the Fifth Third bank parser."""

    def test_debit_credit_balance(self):
        """Test debit/credit columns with a running balance."""
        content = (
            "Date,Description,Debit,Credit,Balance\n"
            "01/03/2024,DEBIT CARD PURCHASE KROGER,54.20,,1945.80\n"
            "01/04/2024,DIRECT DEPOSIT ACME PAYROLL,,2100.00,4045.80\n"
        )
        result = parse_csv(content)

        assert result.parser_name == "Fifth Third Bank"
        assert result.account_type == "bank"
        assert [t.amount for t in result.transactions] == [Decimal("-54.20"), Decimal("2100.00")]

    def test_detect_requires_balance(self):
        """Test the balance column separates Fifth Third from generic files."""
        assert FifthThirdParser().detect(["Date", "Description", "Amount", "Balance"], []) is True
        assert FifthThirdParser().detect(["Date", "Description", "Amount"], []) is False


class TestDetectCsvFormat:
    """Tests for preview-only format detection."""

    def test_known_format(self, chase_csv):
        """Test a known institution is reported."""
        detection = detect_csv_format(chase_csv)

        assert detection.detected is True
        assert detection.parser_name == "Chase Credit Card"
        assert detection.institution == "Chase"

    def test_unknown_format(self, generic_csv):
        """Test generic files are not reported as detected."""
        assert detect_csv_format(generic_csv).detected is False

    def test_empty_content(self):
        """Test empty content is undetected rather than an error."""
        assert detect_csv_format("").detected is False
