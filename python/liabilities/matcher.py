"""
Liability Payment Matcher

Finds the rule, if any, that turns a transaction into a liability payment.
"""

import logging
from decimal import Decimal

from ledger.fingerprint import to_money

from .models import LiabilityPaymentRule

logger = logging.getLogger(__name__)


def payment_amount(transaction: dict) -> Decimal:
    """Amount a transaction pays toward a liability (always non-negative)."""
    return abs(to_money(transaction["amount"]))


def find_matching_rule(
    rules: list[LiabilityPaymentRule],
    transaction: dict
) -> LiabilityPaymentRule | None:
    """Return the first active matching rule, in creation order.

    Args:
        rules: Candidate rules
        transaction: Persisted transaction row

    Returns:
        Matching rule, or None
    """
    if payment_amount(transaction) == 0:
        return None

    ordered = sorted(rules, key=lambda r: r.id if r.id is not None else 0)
    for rule in ordered:
        if rule.is_active and rule.matches(transaction):
            logger.debug(f"Transaction {transaction.get('id')} matched rule {rule.id}")
            return rule

    return None
