"""
Liability Payment Models

Payment lifecycle states, the transition function, and the liability, rule
and payment records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from ledger.fingerprint import to_money


class PaymentStatus(str, Enum):
    """Lifecycle state of a liability payment."""

    PENDING = "pending"
    APPLIED = "applied"
    SKIPPED = "skipped"
    REVERSED = "reversed"


class PaymentAction(str, Enum):
    """Explicit actions on a liability payment."""

    APPLY = "apply"
    REVERSE = "reverse"
    SKIP = "skip"


# (source, action) -> target; anything else is illegal
TRANSITIONS: dict[tuple[PaymentStatus, PaymentAction], PaymentStatus] = {
    (PaymentStatus.PENDING, PaymentAction.APPLY): PaymentStatus.APPLIED,
    (PaymentStatus.PENDING, PaymentAction.SKIP): PaymentStatus.SKIPPED,
    (PaymentStatus.APPLIED, PaymentAction.REVERSE): PaymentStatus.REVERSED,
}


class InvalidTransitionError(Exception):
    """Raised when an action is not legal from the payment's current state."""

    def __init__(self, status: PaymentStatus, action: PaymentAction):
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action.value} a payment that is {status.value}")


def transition(status: PaymentStatus | str, action: PaymentAction | str) -> PaymentStatus:
    """Compute the target state of an action.

    Args:
        status: Current payment status
        action: Requested action

    Returns:
        New status

    Raises:
        InvalidTransitionError: If the action is illegal from ``status``
    """
    status = PaymentStatus(status)
    action = PaymentAction(action)
    try:
        return TRANSITIONS[(status, action)]
    except KeyError:
        raise InvalidTransitionError(status, action) from None


def balance_delta(action: PaymentAction, amount: Decimal) -> Decimal:
    """Change to the liability balance caused by an action."""
    if action == PaymentAction.APPLY:
        return -amount
    if action == PaymentAction.REVERSE:
        return amount
    return Decimal("0")


@dataclass
class Liability:
    """A tracked debt with a running balance."""

    id: int
    name: str
    type: str
    original_amount: Decimal
    current_balance: Decimal
    interest_rate: Decimal | None = None
    monthly_payment: Decimal | None = None
    notes: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Liability":
        return cls(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            original_amount=to_money(row["original_amount"]),
            current_balance=to_money(row["current_balance"]),
            interest_rate=row.get("interest_rate"),
            monthly_payment=row.get("monthly_payment"),
            notes=row.get("notes"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "original_amount": float(self.original_amount),
            "current_balance": float(self.current_balance),
            "interest_rate": float(self.interest_rate) if self.interest_rate is not None else None,
            "monthly_payment": float(self.monthly_payment) if self.monthly_payment is not None else None,
            "notes": self.notes,
        }


@dataclass
class LiabilityPaymentRule:
    """Matches incoming transactions to a liability."""

    id: int | None
    liability_id: int
    match_merchant: str | None = None
    match_description: str | None = None
    match_account_id: int | None = None
    rule_description: str | None = None
    auto_apply: bool = True
    is_active: bool = True

    @classmethod
    def from_row(cls, row: dict) -> "LiabilityPaymentRule":
        return cls(
            id=row["id"],
            liability_id=row["liability_id"],
            match_merchant=row.get("match_merchant"),
            match_description=row.get("match_description"),
            match_account_id=row.get("match_account_id"),
            rule_description=row.get("rule_description"),
            auto_apply=bool(row.get("auto_apply", True)),
            is_active=bool(row.get("is_active", True)),
        )

    def validate(self) -> str | None:
        """Return an error message if the rule cannot match anything."""
        if not (self.match_merchant or "").strip() and not (self.match_description or "").strip():
            return "Rule must set match_merchant or match_description"
        return None

    def matches(self, transaction: dict) -> bool:
        """Check a persisted transaction against every field this rule sets.

        Args:
            transaction: Transaction row (description, merchant, account_id)

        Returns:
            True if all set fields match
        """
        if self.validate() is not None:
            return False

        description = (transaction.get("description") or "").casefold()
        merchant = (transaction.get("merchant") or "").casefold() or description

        if self.match_merchant and self.match_merchant.strip().casefold() not in merchant:
            return False
        if self.match_description and self.match_description.strip().casefold() not in description:
            return False
        if self.match_account_id is not None and transaction.get("account_id") != self.match_account_id:
            return False

        return True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "liability_id": self.liability_id,
            "match_merchant": self.match_merchant,
            "match_description": self.match_description,
            "match_account_id": self.match_account_id,
            "rule_description": self.rule_description,
            "auto_apply": self.auto_apply,
            "is_active": self.is_active,
        }


@dataclass
class LiabilityPayment:
    """A transaction recognized as a payment toward a liability."""

    id: int
    transaction_id: int
    liability_id: int
    status: PaymentStatus
    amount: Decimal
    rule_id: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> "LiabilityPayment":
        return cls(
            id=row["id"],
            transaction_id=row["transaction_id"],
            liability_id=row["liability_id"],
            status=PaymentStatus(row["status"]),
            amount=to_money(row["amount"]),
            rule_id=row.get("rule_id"),
            created_at=row.get("created_at"),
        )

    @property
    def is_active(self) -> bool:
        return self.status != PaymentStatus.REVERSED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "liability_id": self.liability_id,
            "rule_id": self.rule_id,
            "status": self.status.value,
            "amount": float(self.amount),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class ActionResult:
    """Outcome of a payment action or rule change."""

    success: bool
    error: str | None = None
    not_found: bool = False
    payment: LiabilityPayment | None = None
    rule: LiabilityPaymentRule | None = None
    balance: Decimal | None = None
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str, not_found: bool = False) -> "ActionResult":
        return cls(success=False, error=error, not_found=not_found)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "error": self.error,
            "payment": self.payment.to_dict() if self.payment else None,
            "rule": self.rule.to_dict() if self.rule else None,
            "balance": float(self.balance) if self.balance is not None else None,
        }
