"""
Liability Payment Module

Matches transactions to liability payment rules and keeps liability balances
in step with the payments applied against them.
"""

from .matcher import find_matching_rule, payment_amount
from .models import (
    ActionResult,
    InvalidTransitionError,
    Liability,
    LiabilityPayment,
    LiabilityPaymentRule,
    PaymentAction,
    PaymentStatus,
    transition,
)
from .payment_service import LiabilityPaymentService
from .rules import LiabilityRuleService
from .transaction_edits import BulkResult, EditResult, TransactionEditor

__all__ = [
    "find_matching_rule",
    "payment_amount",
    "ActionResult",
    "InvalidTransitionError",
    "Liability",
    "LiabilityPayment",
    "LiabilityPaymentRule",
    "PaymentAction",
    "PaymentStatus",
    "transition",
    "LiabilityPaymentService",
    "LiabilityRuleService",
    "BulkResult",
    "EditResult",
    "TransactionEditor",
]
