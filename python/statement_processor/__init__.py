"""
Statement Processor Module

Handles CSV/PDF statement parsing, duplicate detection, Claude-based
categorization with a rule fallback, and preference learning.
"""

from .categorizer import TransactionCategorizer
from .rule_categorizer import Categorization, RuleCategorizer
from .duplicate_detector import DuplicateDetector, DuplicateFlag
from .preference_learner import PreferenceLearner, build_instruction, merchant_key
from .pdf_extractor import PDFExtractor
from .ingestion import CategorizedTransaction, CommitResult, PreviewResult, StatementIngestor
from .csv_parsers import (
    DetectionResult,
    ParsedTransaction,
    ParseResult,
    GenericParser,
    PARSER_CHAIN,
    detect_csv_format,
    parse_csv,
)

__all__ = [
    # Categorization
    "TransactionCategorizer",
    "Categorization",
    "RuleCategorizer",
    # Duplicate Detection
    "DuplicateDetector",
    "DuplicateFlag",
    # Preference Learning
    "PreferenceLearner",
    "build_instruction",
    "merchant_key",
    # PDF Extraction
    "PDFExtractor",
    # Ingestion
    "CategorizedTransaction",
    "CommitResult",
    "PreviewResult",
    "StatementIngestor",
    # CSV Parsing
    "DetectionResult",
    "ParsedTransaction",
    "ParseResult",
    "GenericParser",
    "PARSER_CHAIN",
    "detect_csv_format",
    "parse_csv",
]
