"""
Preference Learner Module

Turns category corrections into durable natural-language instructions, one
per merchant. A later correction for the same merchant replaces the earlier
instruction.
"""

import logging
import re

logger = logging.getLogger(__name__)


def merchant_key(merchant: str) -> str:
    """Key identifying a merchant across spelling and spacing variants."""
    return re.sub(r"\s+", " ", merchant or "").strip().casefold()


def build_instruction(
    merchant: str,
    category: str,
    subcategory: str | None = None,
    is_transfer: bool = False
) -> str:
    """Render a correction as an instruction for the AI tier.

    Example:
        '"Blue Bottle" should be categorized as Food / Coffee'
    """
    instruction = f'"{merchant.strip()}" should be categorized as {category}'
    if subcategory:
        instruction += f" / {subcategory}"
    if is_transfer:
        instruction += " (mark as transfer)"
    return instruction


class PreferenceLearner:
    """Records category corrections as learned preferences."""

    def __init__(self, store):
        """Initialize the learner.

        Args:
            store: Ledger store providing ``upsert_learned_preference``
        """
        self.store = store

    def learn(
        self,
        merchant: str,
        category: str,
        subcategory: str | None = None,
        is_transfer: bool = False
    ) -> int | None:
        """Upsert the learned instruction for a merchant.

        Returns:
            Preference id, or None if there is no merchant to key on
        """
        key = merchant_key(merchant)
        if not key or not category:
            return None

        instruction = build_instruction(merchant, category, subcategory, is_transfer)
        preference_id = self.store.upsert_learned_preference(key, instruction)
        logger.info(f"Learned preference {preference_id}: {instruction}")
        return preference_id

    def learn_from_correction(
        self,
        merchant: str | None,
        description: str,
        original_category: str | None,
        new_category: str | None,
        subcategory: str | None = None,
        is_transfer: bool = False
    ) -> int | None:
        """Learn only when the category actually changed.

        Args:
            merchant: Merchant name; the description is used when empty
            description: Raw transaction description
            original_category: First suggested category
            new_category: Category chosen by the user
            subcategory: Subcategory chosen by the user
            is_transfer: Transfer flag chosen by the user

        Returns:
            Preference id, or None when nothing was learned
        """
        if not new_category or new_category == original_category:
            return None

        return self.learn(merchant or description, new_category, subcategory, is_transfer)
