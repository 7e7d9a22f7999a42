"""
Transaction fingerprints for duplicate detection.
"""

import hashlib
import re
from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce a number or numeric string to a two-place Decimal."""
    if isinstance(value, Decimal):
        amount = value
    else:
        amount = Decimal(str(value))
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def normalize_description(description: str) -> str:
    """Casefold and collapse whitespace so cosmetic differences don't matter."""
    return re.sub(r"\s+", " ", description or "").strip().casefold()


def transaction_fingerprint(date: str, amount, description: str) -> str:
    """Fingerprint of (date, amount, normalized description).

    Args:
        date: Transaction date as YYYY-MM-DD
        amount: Signed amount
        description: Raw description

    Returns:
        Hex SHA-256 digest
    """
    data = f"{date}|{to_money(amount)}|{normalize_description(description)}"
    return hashlib.sha256(data.encode()).hexdigest()
