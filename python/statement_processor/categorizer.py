"""
Transaction Categorizer Module

Categorizes transactions using the Claude API, with the rule-based
categorizer as a total fallback.
"""

import json
import logging
import re
from pathlib import Path

import anthropic

from .ai_settings import (
    available_categories,
    create_client,
    load_category_config,
    preference_instructions,
    preferences_section,
    resolve_ai_settings,
)
from .csv_parsers.base import ParsedTransaction
from .rule_categorizer import Categorization, RuleCategorizer

logger = logging.getLogger(__name__)


class TransactionCategorizer:
    """Two-tier categorizer: Claude when configured, keyword rules otherwise."""

    BATCH_SIZE = 20
    TEMPERATURE = 0.1
    MAX_TOKENS = 4096

    def __init__(
        self,
        store=None,
        config_dir: Path | str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        client: anthropic.Anthropic | None = None,
        use_claude: bool = True
    ):
        """Initialize the categorizer.

        Args:
            store: Optional ledger store (categories, preferences, AI settings)
            config_dir: Path to configuration directory
            api_key: Anthropic API key (falls back to stored setting, then ANTHROPIC_API_KEY)
            model: Claude model to use
            client: Pre-built Anthropic client
            use_claude: Whether to use Claude at all
        """
        self.store = store
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).parent.parent.parent / "config"
        self.rules = RuleCategorizer(self.config_dir)
        self.category_config = load_category_config(self.config_dir)

        settings = resolve_ai_settings(store, api_key=api_key, model=model)
        self.model = settings.model

        if not use_claude:
            self.client = None
        else:
            self.client = client or create_client(settings)

    @property
    def ai_enabled(self) -> bool:
        return self.client is not None

    def categorize(self, transactions: list[ParsedTransaction]) -> list[Categorization]:
        """Categorize transactions, one result per input, in order.

        Never raises: any AI failure degrades the affected batch to rules.

        Args:
            transactions: Transactions to categorize

        Returns:
            List of Categorizations aligned with the input
        """
        if not transactions:
            return []

        if not self.ai_enabled:
            logger.info("No AI API key configured, using rule-based categorization")
            return [self.rules.categorize(t.description, t.amount) for t in transactions]

        categories = available_categories(self.store, self.category_config)
        instructions = preference_instructions(self.store)

        results = []
        for i in range(0, len(transactions), self.BATCH_SIZE):
            batch = transactions[i:i + self.BATCH_SIZE]
            results.extend(self._categorize_batch(batch, categories, instructions))

        claude_count = sum(1 for r in results if r.method == "claude")
        logger.info(f"Categorized {len(results)} transactions ({claude_count} by Claude)")

        return results

    def _categorize_batch(
        self,
        batch: list[ParsedTransaction],
        categories: list[str],
        instructions: list[str]
    ) -> list[Categorization]:
        try:
            parsed = self._classify_with_claude(batch, categories, instructions)
        except Exception as e:
            logger.warning(f"Claude categorization failed, using rules for {len(batch)} transactions: {e}")
            return [self.rules.categorize(t.description, t.amount) for t in batch]

        by_index = {}
        for item in parsed:
            if isinstance(item, dict) and isinstance(item.get("index"), int):
                by_index.setdefault(item["index"], item)

        results = []
        for position, txn in enumerate(batch, start=1):
            item = by_index.get(position)
            if item is None:
                results.append(self.rules.categorize(txn.description, txn.amount))
                continue

            category = item.get("category")
            if category not in categories:
                category = "Other"

            results.append(Categorization(
                category=category,
                subcategory=_text(item.get("subcategory")) or None,
                merchant=_text(item.get("merchant")) or txn.description,
                confidence=_confidence(item.get("confidence")),
                is_transfer=bool(item.get("isTransfer", False)),
                method="claude",
            ))

        return results

    def _build_prompt(
        self,
        batch: list[ParsedTransaction],
        categories: list[str],
        instructions: list[str]
    ) -> str:
        transaction_list = "\n".join(
            f'{i}. "{txn.description}" - ${abs(txn.amount):.2f} '
            f'{"(expense)" if txn.amount < 0 else "(income)"}'
            for i, txn in enumerate(batch, start=1)
        )

        subcategory_lines = "\n".join(
            f"- {name}: {', '.join(subs)}"
            for name, subs in self.category_config.items()
            if name in categories and subs
        )
        subcategory_section = f"\nSuggested subcategories:\n{subcategory_lines}\n" if subcategory_lines else ""

        return f"""Categorize these financial transactions. For each, provide:
1. Category (one of: {', '.join(categories)})
2. Subcategory (optional, based on the category)
3. Clean merchant name (the recognizable business name)
4. isTransfer (true if this is a transfer between accounts, credit card payment, or similar - not true spending)
{subcategory_section}{preferences_section(instructions)}
Transactions:
{transaction_list}

Respond in JSON format:
[
  {{"index": 1, "category": "Food", "subcategory": "Restaurants", "merchant": "Chipotle", "confidence": 0.95, "isTransfer": false}},
  ...
]

Be concise. Only return the JSON array."""

    def _classify_with_claude(
        self,
        batch: list[ParsedTransaction],
        categories: list[str],
        instructions: list[str]
    ) -> list:
        """Send one batch to Claude and return the decoded JSON array.

        Raises:
            anthropic.APIError: On API failures
            ValueError: If the response holds no JSON array
        """
        message = self.client.messages.create(
            model=self.model,
            max_tokens=self.MAX_TOKENS,
            temperature=self.TEMPERATURE,
            system=(
                "You are a financial transaction categorization assistant. "
                "Always respond with valid JSON only. User preferences override "
                "default categorization rules."
            ),
            messages=[
                {"role": "user", "content": self._build_prompt(batch, categories, instructions)}
            ]
        )

        response_text = message.content[0].text
        match = re.search(r"\[[\s\S]*\]", response_text)
        if not match:
            raise ValueError("No JSON array in Claude response")

        parsed = json.loads(match.group(0))
        if not isinstance(parsed, list):
            raise ValueError("Claude response is not a JSON array")

        return parsed


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def _confidence(value) -> float:
    try:
        return float(value) if value else 0.8
    except (TypeError, ValueError):
        return 0.8
