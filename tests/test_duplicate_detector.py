"""
Duplicate Detector Tests

Tests for transaction fingerprints and duplicate flagging against the
persisted ledger.
"""

import pytest
from decimal import Decimal
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "python"))

from ledger.fingerprint import normalize_description, to_money, transaction_fingerprint
from statement_processor.csv_parsers.base import ParsedTransaction
from statement_processor.duplicate_detector import DuplicateDetector


class TestFingerprint:
    """Tests for the (date, amount, description) fingerprint."""

    def test_deterministic(self):
        """Test the same triple always yields the same fingerprint."""
        first = transaction_fingerprint("2024-01-15", Decimal("-4.50"), "COFFEE SHOP")
        second = transaction_fingerprint("2024-01-15", Decimal("-4.50"), "COFFEE SHOP")

        assert first == second

    def test_cosmetic_differences_ignored(self):
        """Test case, spacing and amount representation do not matter."""
        base = transaction_fingerprint("2024-01-15", Decimal("-4.50"), "COFFEE SHOP")

        assert transaction_fingerprint("2024-01-15", -4.5, "  coffee   shop ") == base
        assert transaction_fingerprint("2024-01-15", "-4.500", "Coffee Shop") == base

    def test_different_fields_differ(self):
        """Test date, amount and description all participate."""
        base = transaction_fingerprint("2024-01-15", Decimal("-4.50"), "COFFEE SHOP")

        assert transaction_fingerprint("2024-01-16", Decimal("-4.50"), "COFFEE SHOP") != base
        assert transaction_fingerprint("2024-01-15", Decimal("4.50"), "COFFEE SHOP") != base
        assert transaction_fingerprint("2024-01-15", Decimal("-4.50"), "TEA SHOP") != base

    def test_helpers(self):
        """Test the normalization helpers."""
        assert normalize_description("  A\tB  C ") == "a b c"
        assert to_money("1.005") == Decimal("1.01")
        assert to_money(2) == Decimal("2.00")


class TestDuplicateDetector:
    """Tests for DuplicateDetector."""

    @pytest.fixture
    def detector(self, store, account_id):
        """Detector over a ledger holding one coffee purchase."""
        store.insert_transactions([{
            "account_id": account_id,
            "date": "2024-01-15",
            "description": "COFFEE SHOP",
            "amount": Decimal("-4.50"),
        }])
        return DuplicateDetector(store)

    def test_existing_transaction_is_duplicate(self, detector):
        """Test a persisted triple is flagged."""
        assert detector.is_duplicate_transaction("2024-01-15", Decimal("-4.50"), "coffee shop") is True

    def test_new_transaction_is_not_duplicate(self, detector):
        """Test a different amount is not flagged."""
        assert detector.is_duplicate_transaction("2024-01-15", Decimal("-5.50"), "COFFEE SHOP") is False

    def test_check_batch_flags_in_order(self, detector):
        """Test batch flags align with the input order."""
        batch = [
            ParsedTransaction(date="2024-01-16", description="PAYROLL", amount=Decimal("2500")),
            ParsedTransaction(date="2024-01-15", description="COFFEE SHOP", amount=Decimal("-4.5")),
        ]

        flags = detector.check_batch(batch)

        assert [f.is_duplicate for f in flags] == [False, True]
        assert flags[1].fingerprint == transaction_fingerprint("2024-01-15", Decimal("-4.50"), "COFFEE SHOP")

    def test_edit_keeps_fingerprint_current(self, store, detector):
        """Test editing the amount moves the fingerprint with it."""
        txn_id = store.list_transactions()[0]["id"]
        store.update_transaction(txn_id, {"amount": Decimal("-6.00")})

        assert detector.is_duplicate_transaction("2024-01-15", Decimal("-4.50"), "COFFEE SHOP") is False
        assert detector.is_duplicate_transaction("2024-01-15", Decimal("-6.00"), "COFFEE SHOP") is True
