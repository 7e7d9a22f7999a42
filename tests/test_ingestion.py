"""
Statement Ingestion Tests

Tests for the preview/commit upload flow: parsing, duplicate flags,
categorization, account resolution, preference learning and liability
payment matching on commit.
"""

import json
import pytest
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "python"))

from liabilities import LiabilityRuleService, PaymentStatus
from statement_processor.ingestion import CategorizedTransaction, StatementIngestor, is_pdf
from statement_processor.pdf_extractor import PDFExtractor


@pytest.fixture
def ingestor(store, config_dir):
    """Ingestor using rule-based categorization."""
    return StatementIngestor(store, config_dir=config_dir)


def pdf_client(payload):
    """Mock Anthropic client answering a PDF extraction request."""
    client = Mock()
    client.messages.create.return_value = Mock(content=[Mock(text=json.dumps(payload))])
    return client


class TestPreview:
    """Tests for StatementIngestor.preview."""

    def test_generic_csv(self, ingestor, generic_csv):
        """Test a generic file is parsed and categorized but not detected."""
        preview = ingestor.preview("bank.csv", generic_csv.encode("utf-8"))

        assert preview.success is True
        assert preview.detected is False
        assert preview.institution == "Unknown"
        assert preview.parser_name == "Generic CSV"
        assert preview.transaction_count == 2
        coffee, payroll = preview.transactions
        assert (coffee.category, coffee.subcategory) == ("Food", "Coffee")
        assert payroll.category == "Income"
        assert payroll.original_category == "Income"
        assert preview.duplicate_count == 0

    def test_institution_category_preferred_over_rules(self, ingestor, chase_csv):
        """Test the bank's own category wins over the keyword rules."""
        preview = ingestor.preview("chase.csv", chase_csv)

        assert preview.detected is True
        assert preview.institution == "Chase"
        assert preview.account_type == "credit_card"
        starbucks, shell = preview.transactions
        assert starbucks.category == "Food"
        assert starbucks.merchant == "Starbucks"
        assert shell.category == "Transportation"

    def test_amex_merchant_from_rules(self, ingestor, amex_csv):
        """Test rule merchants fill in when the export has none."""
        preview = ingestor.preview("activity.csv", amex_csv)

        assert preview.institution == "American Express"
        assert preview.transactions[0].category == "Shopping"
        assert preview.transactions[0].merchant == "Amazon"
        assert preview.transactions[0].amount == Decimal("-25.00")

    def test_nothing_persisted(self, store, ingestor, generic_csv):
        """Test preview never writes."""
        ingestor.preview("bank.csv", generic_csv)

        assert store.list_transactions() == []
        assert store.list_accounts() == []

    def test_duplicates_flagged(self, ingestor, generic_csv):
        """Test a second preview of a committed file flags every row."""
        first = ingestor.preview("bank.csv", generic_csv)
        ingestor.commit(first.transactions, account_name="Checking")

        second = ingestor.preview("bank.csv", generic_csv)

        assert second.duplicate_count == 2
        assert all(t.is_duplicate for t in second.transactions)

    def test_unparseable_csv(self, ingestor):
        """Test parser errors are reported in the preview."""
        preview = ingestor.preview("notes.csv", "Foo,Bar\n1,2\n")

        assert preview.success is False
        assert preview.error == "Could not find date column in CSV"
        assert preview.transactions == []

    def test_undecodable_bytes(self, ingestor):
        """Test non UTF-8 bytes are rejected with an error."""
        preview = ingestor.preview("bank.csv", b"Date,Description,Amount\n\xff\xfe,\xc3,1\n")

        assert preview.success is False
        assert preview.error == "Could not decode CSV file as UTF-8"

    def test_pdf_without_api_key(self, ingestor):
        """Test PDF uploads need a configured key."""
        preview = ingestor.preview("statement.pdf", b"%PDF-1.7 ...")

        assert preview.success is False
        assert "No AI API key configured" in preview.error

    def test_pdf_extraction(self, store, config_dir):
        """Test PDF transactions arrive already categorized with their statement period."""
        client = pdf_client({
            "institution": "Chase",
            "accountType": "credit_card",
            "statementPeriodStart": "2024-01-01",
            "statementPeriodEnd": "2024-01-31",
            "transactions": [
                {"date": "2024-01-05", "description": "SQ *BLUE BOTTLE", "amount": -4.5,
                 "category": "Food", "subcategory": "Coffee", "merchant": "Blue Bottle"},
                {"description": "NO DATE", "amount": -1},
                {"date": "2024-01-09", "description": "PAYMENT THANK YOU", "amount": 300,
                 "category": "Financial", "isTransfer": True},
            ],
        })
        extractor = PDFExtractor(store=store, config_dir=config_dir, client=client)
        ingestor = StatementIngestor(store, pdf_extractor=extractor, config_dir=config_dir)

        preview = ingestor.preview("january.pdf", b"%PDF-1.4\n...")

        assert preview.success is True
        assert preview.parser_name == "PDF (AI)"
        assert preview.institution == "Chase"
        assert preview.account_type == "credit_card"
        assert preview.statement_period_start == "2024-01-01"
        assert preview.statement_period_end == "2024-01-31"
        assert len(preview.warnings) == 1
        coffee, payment = preview.transactions
        assert coffee.merchant == "Blue Bottle"
        assert coffee.amount == Decimal("-4.5")
        assert payment.is_transfer is True

        content = client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content[0]["type"] == "document"
        assert content[0]["source"]["media_type"] == "application/pdf"

    def test_pdf_empty_response_content(self, store, config_dir):
        """Test a response without a text block is a failed preview, not an exception."""
        client = Mock()
        client.messages.create.return_value = Mock(content=[])
        extractor = PDFExtractor(store=store, config_dir=config_dir, client=client)
        ingestor = StatementIngestor(store, pdf_extractor=extractor, config_dir=config_dir)

        preview = ingestor.preview("s.pdf", b"%PDF-1.4 hello")

        assert preview.success is False
        assert preview.transactions == []
        assert "could not parse" in preview.error

    def test_pdf_non_string_fields(self, store, config_dir):
        """Test non-string descriptions are dropped and non-string merchants ignored."""
        client = pdf_client({
            "institution": "Chase",
            "accountType": "bank",
            "transactions": [
                {"date": "2024-01-05", "description": 12345, "amount": -4.5},
                {"date": "2024-01-06", "description": "GROCER", "amount": -20, "merchant": ["Grocer"]},
            ],
        })
        extractor = PDFExtractor(store=store, config_dir=config_dir, client=client)
        ingestor = StatementIngestor(store, pdf_extractor=extractor, config_dir=config_dir)

        preview = ingestor.preview("s.pdf", b"%PDF-1.4 hello")

        assert preview.success is True
        assert len(preview.warnings) == 1
        assert [t.description for t in preview.transactions] == ["GROCER"]

    def test_pdf_only_non_string_fields(self, store, config_dir):
        """Test a statement whose only row is invalid yields no transactions."""
        client = pdf_client({
            "institution": "Chase",
            "transactions": [{"date": "2024-01-05", "description": 12345, "amount": -4.5}],
        })
        extractor = PDFExtractor(store=store, config_dir=config_dir, client=client)
        ingestor = StatementIngestor(store, pdf_extractor=extractor, config_dir=config_dir)

        preview = ingestor.preview("s.pdf", b"%PDF-1.4 hello")

        assert preview.success is False
        assert preview.transactions == []

    def test_pdf_text_content_outside_latin1(self, ingestor):
        """Test PDF content passed as text with wide characters does not raise."""
        preview = ingestor.preview("statement.pdf", "%PDF-1.4 café ✓")

        assert preview.success is False
        assert "No AI API key configured" in preview.error

    def test_is_pdf(self):
        """Test PDF detection by extension or magic bytes."""
        assert is_pdf("a.PDF", b"")
        assert is_pdf("upload", b"%PDF-1.4")
        assert not is_pdf("a.csv", "Date,Amount")


class TestCommit:
    """Tests for StatementIngestor.commit."""

    def test_commit_creates_account(self, store, ingestor, chase_csv):
        """Test an account is created from the institution and reused afterwards."""
        preview = ingestor.preview("chase.csv", chase_csv)

        result = ingestor.commit(preview.transactions, account_type="credit_card", institution="Chase")

        assert result.success is True
        assert result.imported == 2
        account = store.get_account(result.account_id)
        assert account["name"] == "Chase Account"
        assert account["type"] == "credit_card"

        again = ingestor.commit(
            [CategorizedTransaction(date="2024-02-01", description="NEW", amount=Decimal("-1.00"))],
            institution="Chase",
        )
        assert again.account_id == result.account_id
        assert len(store.list_accounts()) == 1

    def test_commit_into_existing_account(self, store, ingestor, account_id, generic_csv):
        """Test importing into a known account id."""
        preview = ingestor.preview("bank.csv", generic_csv)

        result = ingestor.commit(preview.transactions, account_id=account_id)

        assert result.account_id == account_id
        assert len(store.list_transactions(account_id=account_id)) == 2

    def test_unknown_account_rejected(self, store, ingestor, generic_csv):
        """Test a missing account id aborts without writing."""
        preview = ingestor.preview("bank.csv", generic_csv)

        result = ingestor.commit(preview.transactions, account_id=404)

        assert result.success is False
        assert result.error == "Account 404 not found"
        assert store.list_transactions() == []

    def test_empty_commit(self, ingestor):
        """Test committing nothing is an error."""
        result = ingestor.commit([])

        assert result.success is False
        assert result.message == "No transactions provided"

    def test_duplicates_skipped_unless_included(self, store, ingestor, generic_csv):
        """Test flagged duplicates are only imported when explicitly included."""
        ingestor.commit(ingestor.preview("bank.csv", generic_csv).transactions, account_name="Checking")
        second = ingestor.preview("bank.csv", generic_csv)
        second.transactions[0].include_duplicate = True

        result = ingestor.commit(second.transactions, account_name="Checking")

        assert result.imported == 1
        assert result.skipped_duplicates == 1
        assert len(store.list_transactions()) == 3

    def test_corrections_are_learned(self, store, ingestor, generic_csv):
        """Test changing a suggested category records a preference."""
        preview = ingestor.preview("bank.csv", generic_csv)
        preview.transactions[0].category = "Shopping"

        result = ingestor.commit(preview.transactions, account_name="Checking")

        assert result.learned_preferences == 1
        preferences = store.list_preferences()
        assert preferences[0]["instruction"] == '"COFFEE SHOP" should be categorized as Shopping / Coffee'
        assert store.list_transactions()[-1]["category"] == "Shopping"

    def test_statement_upload_recorded(self, store, ingestor, generic_csv):
        """Test statement period bounds are stored with the upload."""
        preview = ingestor.preview("bank.csv", generic_csv)

        result = ingestor.commit(
            preview.transactions,
            account_name="Checking",
            statement_period_start="2024-01-01",
            statement_period_end="2024-01-31",
            filename="bank.csv",
        )

        uploads = store.list_statement_uploads(result.account_id)
        assert len(uploads) == 1
        assert uploads[0]["transaction_count"] == 2
        assert uploads[0]["filename"] == "bank.csv"

    def test_loan_payment_applied_on_commit(self, store, ingestor, auto_loan, loan_payment_csv):
        """Test a committed loan payment is matched and applied to the liability."""
        LiabilityRuleService(store).create_rule(auto_loan, match_merchant="Auto Finance Co")
        preview = ingestor.preview("checking.csv", loan_payment_csv)

        result = ingestor.commit(preview.transactions, account_name="Checking")

        assert result.payments_detected == 1
        assert result.message == "Imported 2 transactions, 1 liability payment(s) detected"
        assert store.get_liability(auto_loan)["current_balance"] == Decimal("14550.00")
        payments = store.list_payments(liability_id=auto_loan)
        assert [p["status"] for p in payments] == [PaymentStatus.APPLIED.value]

    def test_roundtrip_through_dict(self, ingestor, generic_csv):
        """Test reviewed transactions survive serialization to the client."""
        preview = ingestor.preview("bank.csv", generic_csv)
        reviewed = [CategorizedTransaction.from_dict(t) for t in preview.to_dict()["transactions"]]

        result = ingestor.commit(reviewed, account_name="Checking")

        assert result.imported == 2
        assert result.learned_preferences == 0
