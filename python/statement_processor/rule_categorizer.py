"""
Rule-Based Categorizer Module

Deterministic keyword/sign categorization without using AI. Used on its own
when no API key is configured, and as the fallback for the AI tier.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.7


@dataclass
class Categorization:
    """Category suggestion for one transaction."""

    category: str
    subcategory: str | None
    merchant: str
    confidence: float
    is_transfer: bool = False
    method: str = "rules"  # 'rules', 'claude'

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "subcategory": self.subcategory,
            "merchant": self.merchant,
            "confidence": self.confidence,
            "is_transfer": self.is_transfer,
            "method": self.method,
        }


@dataclass
class CategoryRule:
    """A compiled keyword rule."""

    pattern: re.Pattern
    category: str
    subcategory: str | None = None
    merchant: str | None = None
    confidence: float = DEFAULT_CONFIDENCE


class RuleCategorizer:
    """Keyword and sign based categorizer using preloaded patterns."""

    def __init__(self, config_dir: Path | str | None = None):
        """Initialize the rule categorizer.

        Args:
            config_dir: Path to configuration directory
        """
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).parent.parent.parent / "config"
        self._transfer_rules: list[CategoryRule] = []
        self._income_rules: list[CategoryRule] = []
        self._expense_rules: list[CategoryRule] = []
        self._fallback = {"category": "Other", "subcategory": "Uncategorized"}
        self._load_rules()

    def _load_rules(self) -> None:
        """Load categorization rules from config file."""
        rules_file = self.config_dir / "categorization_rules.yaml"

        if not rules_file.exists():
            logger.warning(f"Categorization rules file not found: {rules_file}")
            return

        try:
            with open(rules_file) as f:
                data = yaml.safe_load(f) or {}

            self._transfer_rules = self._compile(data.get("transfers", []))
            self._income_rules = self._compile(data.get("income", []))
            self._expense_rules = self._compile(data.get("expenses", []))
            self._fallback.update(data.get("fallback") or {})

            logger.info(
                f"Loaded {len(self._transfer_rules)} transfer, "
                f"{len(self._income_rules)} income, "
                f"{len(self._expense_rules)} expense rules"
            )
        except (OSError, yaml.YAMLError, re.error, KeyError) as e:
            logger.error(f"Failed to load categorization rules: {e}")

    @staticmethod
    def _compile(entries: list[dict]) -> list[CategoryRule]:
        return [
            CategoryRule(
                pattern=re.compile(entry["pattern"], re.IGNORECASE),
                category=entry["category"],
                subcategory=entry.get("subcategory"),
                merchant=entry.get("merchant"),
                confidence=float(entry.get("confidence", DEFAULT_CONFIDENCE)),
            )
            for entry in entries
        ]

    def categorize(self, description: str, amount: Decimal | float) -> Categorization:
        """Categorize a single transaction.

        Args:
            description: Raw transaction description
            amount: Signed amount (negative = outflow)

        Returns:
            Categorization; unmatched transactions get the fallback category
            with zero confidence
        """
        description = description or ""

        for rule in self._transfer_rules:
            if rule.pattern.search(description):
                return self._result(rule, description, is_transfer=True)

        if amount > 0:
            for rule in self._income_rules:
                if rule.pattern.search(description):
                    return self._result(rule, description)

        for rule in self._expense_rules:
            if rule.pattern.search(description):
                return self._result(rule, description)

        return Categorization(
            category=self._fallback["category"],
            subcategory=self._fallback.get("subcategory"),
            merchant=description,
            confidence=0.0,
        )

    def categorize_batch(self, transactions: list[tuple[str, Decimal]]) -> list[Categorization]:
        """Categorize (description, amount) pairs, preserving order."""
        return [self.categorize(description, amount) for description, amount in transactions]

    @staticmethod
    def _result(rule: CategoryRule, description: str, is_transfer: bool = False) -> Categorization:
        return Categorization(
            category=rule.category,
            subcategory=rule.subcategory,
            merchant=rule.merchant or description,
            confidence=rule.confidence,
            is_transfer=is_transfer,
        )
