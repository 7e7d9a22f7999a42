"""
Duplicate Transaction Detector Module

Flags incoming transactions that already exist in the persisted ledger.
Duplicates are flagged, never dropped: recurring charges legitimately repeat,
so inclusion is left to the reviewer.
"""

import logging
from dataclasses import dataclass

from ledger.fingerprint import transaction_fingerprint

from .csv_parsers.base import ParsedTransaction

logger = logging.getLogger(__name__)


@dataclass
class DuplicateFlag:
    """Duplicate status of one incoming transaction."""

    fingerprint: str
    is_duplicate: bool


class DuplicateDetector:
    """Checks (date, amount, normalized description) against persisted history."""

    def __init__(self, store):
        """Initialize the duplicate detector.

        Args:
            store: Ledger store providing ``transaction_exists(fingerprint)``
        """
        self.store = store

    def is_duplicate_transaction(self, date: str, amount, description: str) -> bool:
        """Check a single transaction against persisted history.

        Args:
            date: Transaction date as YYYY-MM-DD
            amount: Signed amount
            description: Raw description

        Returns:
            True if an identical transaction is already stored
        """
        return self.store.transaction_exists(transaction_fingerprint(date, amount, description))

    def check_batch(self, transactions: list[ParsedTransaction]) -> list[DuplicateFlag]:
        """Flag each transaction of a batch, in order.

        Args:
            transactions: Parsed transactions

        Returns:
            One DuplicateFlag per transaction
        """
        flags = []
        for txn in transactions:
            fingerprint = transaction_fingerprint(txn.date, txn.amount, txn.description)
            flags.append(DuplicateFlag(
                fingerprint=fingerprint,
                is_duplicate=self.store.transaction_exists(fingerprint),
            ))

        duplicate_count = sum(1 for f in flags if f.is_duplicate)
        if duplicate_count:
            logger.info(f"{duplicate_count} of {len(flags)} transactions already in ledger")

        return flags
