"""
Institution-specific CSV parsers for bank, credit card and brokerage exports.
"""

from .base import BaseCSVParser, ColumnMap, DetectionResult, ParsedTransaction, ParseResult
from .chase import ChaseParser
from .amex import AmexParser
from .applecard import AppleCardParser
from .robinhood import RobinhoodParser
from .fifththird import FifthThirdParser
from .generic import GenericParser, PARSER_CHAIN, detect_csv_format, parse_csv

__all__ = [
    "BaseCSVParser",
    "ColumnMap",
    "DetectionResult",
    "ParsedTransaction",
    "ParseResult",
    "ChaseParser",
    "AmexParser",
    "AppleCardParser",
    "RobinhoodParser",
    "FifthThirdParser",
    "GenericParser",
    "PARSER_CHAIN",
    "detect_csv_format",
    "parse_csv",
]
