"""
Statement Ingestion Module

Two-step upload flow. ``preview`` parses a CSV or PDF statement, flags
duplicates and suggests categories without writing anything. ``commit``
persists the reviewed transactions, learns from the reviewer's category
corrections and runs liability payment matching on what was inserted.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from ledger.fingerprint import to_money
from liabilities.payment_service import LiabilityPaymentService

from .categorizer import TransactionCategorizer
from .csv_parsers import DetectionResult, ParsedTransaction, ParseResult, detect_csv_format, parse_csv
from .duplicate_detector import DuplicateDetector
from .pdf_extractor import PDFExtractor
from .preference_learner import PreferenceLearner

logger = logging.getLogger(__name__)


@dataclass
class CategorizedTransaction:
    """A parsed transaction with its suggested category and duplicate flags."""

    date: str
    description: str
    amount: Decimal
    category: str | None = None
    subcategory: str | None = None
    merchant: str | None = None
    is_transfer: bool = False
    raw_data: dict = field(default_factory=dict)
    original_category: str | None = None  # first suggestion, kept to detect corrections
    confidence: float | None = None
    is_duplicate: bool = False
    include_duplicate: bool = False

    @property
    def should_import(self) -> bool:
        return not self.is_duplicate or self.include_duplicate

    @classmethod
    def from_dict(cls, data: dict) -> "CategorizedTransaction":
        return cls(
            date=data["date"],
            description=data["description"],
            amount=to_money(data["amount"]),
            category=data.get("category"),
            subcategory=data.get("subcategory"),
            merchant=data.get("merchant"),
            is_transfer=bool(data.get("is_transfer", False)),
            raw_data=data.get("raw_data") or {},
            original_category=data.get("original_category"),
            confidence=data.get("confidence"),
            is_duplicate=bool(data.get("is_duplicate", False)),
            include_duplicate=bool(data.get("include_duplicate", False)),
        )

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "description": self.description,
            "amount": float(self.amount),
            "category": self.category,
            "subcategory": self.subcategory,
            "merchant": self.merchant,
            "is_transfer": self.is_transfer,
            "raw_data": self.raw_data,
            "original_category": self.original_category,
            "confidence": self.confidence,
            "is_duplicate": self.is_duplicate,
            "include_duplicate": self.include_duplicate,
        }


@dataclass
class PreviewResult:
    """Everything the reviewer needs before committing an upload."""

    detected: bool
    institution: str
    parser_name: str | None
    success: bool
    account_type: str
    transactions: list[CategorizedTransaction] = field(default_factory=list)
    error: str | None = None
    statement_period_start: str | None = None
    statement_period_end: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)

    @property
    def duplicate_count(self) -> int:
        return sum(1 for t in self.transactions if t.is_duplicate)

    def to_dict(self) -> dict:
        return {
            "detected": self.detected,
            "institution": self.institution,
            "parser_name": self.parser_name,
            "success": self.success,
            "transaction_count": self.transaction_count,
            "duplicate_count": self.duplicate_count,
            "transactions": [t.to_dict() for t in self.transactions],
            "account_type": self.account_type,
            "error": self.error,
            "statement_period_start": self.statement_period_start,
            "statement_period_end": self.statement_period_end,
            "warnings": self.warnings,
        }


@dataclass
class CommitResult:
    """Outcome of persisting a reviewed upload."""

    success: bool
    imported: int = 0
    account_id: int | None = None
    institution: str | None = None
    payments_detected: int = 0
    skipped_duplicates: int = 0
    learned_preferences: int = 0
    error: str | None = None

    @property
    def message(self) -> str:
        if not self.success:
            return self.error or "Import failed"
        message = f"Imported {self.imported} transactions"
        if self.payments_detected:
            message += f", {self.payments_detected} liability payment(s) detected"
        return message

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "imported": self.imported,
            "account_id": self.account_id,
            "institution": self.institution,
            "payments_detected": self.payments_detected,
            "skipped_duplicates": self.skipped_duplicates,
            "learned_preferences": self.learned_preferences,
            "error": self.error,
        }


def is_pdf(filename: str, content: bytes | str) -> bool:
    if filename and filename.lower().endswith(".pdf"):
        return True
    return isinstance(content, bytes) and content.lstrip()[:5].startswith(b"%PDF")


class StatementIngestor:
    """Runs the preview and commit steps of a statement upload."""

    def __init__(
        self,
        store,
        categorizer: TransactionCategorizer | None = None,
        pdf_extractor: PDFExtractor | None = None,
        config_dir: Path | str | None = None
    ):
        """Initialize the ingestor.

        Args:
            store: Ledger store
            categorizer: Transaction categorizer (built from the store if not provided)
            pdf_extractor: PDF extractor (built from the store if not provided)
            config_dir: Path to configuration directory
        """
        self.store = store
        self.config_dir = config_dir
        self.categorizer = categorizer or TransactionCategorizer(store=store, config_dir=config_dir)
        self._pdf_extractor = pdf_extractor
        self.duplicates = DuplicateDetector(store)
        self.learner = PreferenceLearner(store)
        self.payments = LiabilityPaymentService(store)

    @property
    def pdf_extractor(self) -> PDFExtractor:
        if self._pdf_extractor is None:
            self._pdf_extractor = PDFExtractor(store=self.store, config_dir=self.config_dir)
        return self._pdf_extractor

    def parse(self, filename: str, content: bytes | str) -> tuple[ParseResult, DetectionResult]:
        """Parse a statement file without categorizing it.

        Args:
            filename: Uploaded file name (extension selects PDF handling)
            content: File contents

        Returns:
            (ParseResult, DetectionResult)
        """
        if is_pdf(filename, content):
            if isinstance(content, str):
                content = content.encode("latin-1", errors="replace")
            result = self.pdf_extractor.extract_from_bytes(content, source_name=filename)
            detection = DetectionResult(
                detected=result.success,
                parser_name=f"{result.institution} PDF",
                institution=result.institution,
            )
            return result, detection

        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8-sig")
            except UnicodeDecodeError:
                return ParseResult.failure("Could not decode CSV file as UTF-8"), DetectionResult(detected=False)

        return parse_csv(content), detect_csv_format(content)

    def preview(self, filename: str, content: bytes | str) -> PreviewResult:
        """Parse, flag duplicates and categorize an uploaded statement.

        Args:
            filename: Uploaded file name
            content: File contents

        Returns:
            PreviewResult; nothing is persisted
        """
        result, detection = self.parse(filename, content)

        institution = result.institution if result.institution != "Unknown" else (detection.institution or "Unknown")
        preview = PreviewResult(
            detected=detection.detected,
            institution=institution,
            parser_name=result.parser_name or detection.parser_name,
            success=result.success,
            account_type=result.account_type,
            error=result.error,
            statement_period_start=result.statement_period_start,
            statement_period_end=result.statement_period_end,
            warnings=list(result.warnings),
        )

        if not result.success:
            logger.warning(f"Preview of {filename} failed: {result.error}")
            return preview

        flags = self.duplicates.check_batch(result.transactions)

        if is_pdf(filename, content):
            # Claude already categorized PDF transactions during extraction
            categorized = [self._from_extraction(txn) for txn in result.transactions]
        else:
            categorized = self._categorize(result.transactions)

        for txn, flag in zip(categorized, flags):
            txn.is_duplicate = flag.is_duplicate

        preview.transactions = categorized
        logger.info(
            f"Preview of {filename}: {preview.transaction_count} transactions, "
            f"{preview.duplicate_count} duplicates ({preview.parser_name})"
        )
        return preview

    def _categorize(self, transactions: list[ParsedTransaction]) -> list[CategorizedTransaction]:
        categorizations = self.categorizer.categorize(transactions)

        categorized = []
        for txn, cat in zip(transactions, categorizations):
            if cat.method == "claude":
                category = cat.category or txn.category
                merchant = cat.merchant or txn.merchant
            else:
                # institution categories are more specific than keyword rules
                category = txn.category or cat.category
                merchant = txn.merchant or cat.merchant

            categorized.append(CategorizedTransaction(
                date=txn.date,
                description=txn.description,
                amount=txn.amount,
                category=category,
                subcategory=cat.subcategory or txn.subcategory,
                merchant=merchant,
                is_transfer=cat.is_transfer or txn.is_transfer,
                raw_data=txn.raw_data,
                original_category=category,
                confidence=cat.confidence,
            ))

        return categorized

    @staticmethod
    def _from_extraction(txn: ParsedTransaction) -> CategorizedTransaction:
        return CategorizedTransaction(
            date=txn.date,
            description=txn.description,
            amount=txn.amount,
            category=txn.category,
            subcategory=txn.subcategory,
            merchant=txn.merchant,
            is_transfer=txn.is_transfer,
            raw_data=txn.raw_data,
            original_category=txn.category,
        )

    def commit(
        self,
        transactions: list[CategorizedTransaction],
        account_type: str = "bank",
        institution: str | None = None,
        account_id: int | None = None,
        account_name: str | None = None,
        statement_period_start: str | None = None,
        statement_period_end: str | None = None,
        filename: str | None = None
    ) -> CommitResult:
        """Persist reviewed transactions and run liability matching.

        Args:
            transactions: Reviewed transactions from the preview
            account_type: Account type for a newly created account
            institution: Institution name
            account_id: Existing account to import into
            account_name: Account name to find or create when no id is given
            statement_period_start: Statement period start (YYYY-MM-DD)
            statement_period_end: Statement period end (YYYY-MM-DD)
            filename: Uploaded file name

        Returns:
            CommitResult
        """
        if not transactions:
            return CommitResult(success=False, error="No transactions provided")

        to_import = [t for t in transactions if t.should_import]
        skipped = len(transactions) - len(to_import)

        with self.store.atomic():
            if account_id is not None:
                if self.store.get_account(account_id) is None:
                    return CommitResult(success=False, error=f"Account {account_id} not found")
            else:
                account_id = self._resolve_account(account_name, account_type, institution)

            inserted_ids = self.store.insert_transactions([
                {
                    "account_id": account_id,
                    "date": t.date,
                    "description": t.description,
                    "amount": t.amount,
                    "category": t.category,
                    "subcategory": t.subcategory,
                    "merchant": t.merchant,
                    "is_transfer": t.is_transfer,
                    "raw_data": t.raw_data,
                }
                for t in to_import
            ])

            learned = 0
            for t in to_import:
                preference_id = self.learner.learn_from_correction(
                    merchant=t.merchant,
                    description=t.description,
                    original_category=t.original_category,
                    new_category=t.category,
                    subcategory=t.subcategory,
                    is_transfer=t.is_transfer,
                )
                if preference_id is not None:
                    learned += 1

            if statement_period_start and statement_period_end:
                self.store.create_statement_upload(
                    account_id=account_id,
                    period_start=statement_period_start,
                    period_end=statement_period_end,
                    filename=filename,
                    transaction_count=len(inserted_ids),
                )

        payments = self.payments.process_transactions(inserted_ids)

        result = CommitResult(
            success=True,
            imported=len(inserted_ids),
            account_id=account_id,
            institution=institution,
            payments_detected=len(payments),
            skipped_duplicates=skipped,
            learned_preferences=learned,
        )
        logger.info(f"Commit into account {account_id}: {result.message}")
        return result

    def _resolve_account(self, account_name: str | None, account_type: str, institution: str | None) -> int:
        name = account_name or f"{institution or 'Unknown'} Account"
        existing = self.store.find_account_by_name(name)
        if existing:
            return existing["id"]

        account_id = self.store.create_account(name, account_type or "bank", institution)
        logger.info(f"Created account {account_id}: {name}")
        return account_id
