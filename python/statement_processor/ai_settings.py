"""
AI settings shared by the categorizer and the PDF extractor.

Resolution order for each value: explicit argument, persisted ``ai_settings``
row, environment variable, built-in default.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import anthropic
import yaml

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

API_KEY_SETTING = "anthropic_api_key"
MODEL_SETTING = "model"

DEFAULT_CATEGORIES = [
    "Income",
    "Housing",
    "Transportation",
    "Groceries",
    "Food",
    "Shopping",
    "Entertainment",
    "Health",
    "Travel",
    "Financial",
    "Subscriptions",
    "Investing",
    "Other",
]


@dataclass
class AISettings:
    api_key: str | None
    model: str

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


def resolve_ai_settings(store=None, api_key: str | None = None, model: str | None = None) -> AISettings:
    """Resolve the API key and model.

    Args:
        store: Optional ledger store holding persisted settings
        api_key: Explicit API key
        model: Explicit model name

    Returns:
        AISettings
    """
    if api_key is None and store is not None:
        api_key = store.get_ai_setting(API_KEY_SETTING)
    if model is None and store is not None:
        model = store.get_ai_setting(MODEL_SETTING)

    return AISettings(
        api_key=api_key or os.getenv("ANTHROPIC_API_KEY"),
        model=model or os.getenv("CATEGORIZER_MODEL") or DEFAULT_MODEL,
    )


def create_client(settings: AISettings) -> anthropic.Anthropic | None:
    """Create an Anthropic client, or None when no key is configured."""
    if not settings.enabled:
        return None
    return anthropic.Anthropic(api_key=settings.api_key)


def load_category_config(config_dir: Path) -> dict[str, list[str]]:
    """Load category -> subcategories from categories.yaml.

    Returns:
        Mapping in file order; empty if the file is missing
    """
    categories_file = config_dir / "categories.yaml"
    if not categories_file.exists():
        logger.warning(f"Categories file not found: {categories_file}")
        return {}

    with open(categories_file) as f:
        data = yaml.safe_load(f) or {}

    return {name: list(subs or []) for name, subs in (data.get("categories") or {}).items()}


def available_categories(store=None, category_config: dict[str, list[str]] | None = None) -> list[str]:
    """Category names offered to the AI tier.

    Persisted categories win, then the YAML defaults, then the built-in list.
    """
    if store is not None:
        names = store.list_category_names()
        if names:
            return names

    if category_config:
        return list(category_config)

    return list(DEFAULT_CATEGORIES)


def preference_instructions(store=None) -> list[str]:
    """Stored categorization instructions, newest first."""
    if store is None:
        return []
    return [p["instruction"] for p in store.list_preferences()]


def preferences_section(instructions: list[str]) -> str:
    """Prompt block carrying the user's categorization preferences."""
    if not instructions:
        return ""

    lines = "\n".join(f"- {instruction}" for instruction in instructions)
    return f"""
USER'S CATEGORIZATION PREFERENCES (follow these exactly):
{lines}

Apply these preferences precisely. They can control:
- Categories and subcategories
- Transfer status (if marked as "transfer", set isTransfer: true)
- Merchant display names (use the name a preference gives for the "merchant" field)

If a preference includes a condition (like "above $1200"), apply it ONLY when the condition is met.
"""
