"""
Liability Payment Service

Creates liability payments for matching transactions and moves them through
their lifecycle, keeping each liability balance equal to its original state
minus the payments currently applied.
"""

import logging
from decimal import Decimal

from ledger.fingerprint import to_money

from .matcher import find_matching_rule, payment_amount
from .models import (
    ActionResult,
    InvalidTransitionError,
    Liability,
    LiabilityPayment,
    LiabilityPaymentRule,
    PaymentAction,
    PaymentStatus,
    balance_delta,
    transition,
)

logger = logging.getLogger(__name__)


class LiabilityPaymentService:
    """Matches transactions to liabilities and applies, reverses or skips payments."""

    def __init__(self, store):
        """Initialize the service.

        Args:
            store: Ledger store
        """
        self.store = store

    # Matching

    def process_transaction(self, transaction_id: int) -> LiabilityPayment | None:
        """Run rule matching for one persisted transaction.

        A matched rule with ``auto_apply`` creates an applied payment and
        reduces the liability balance in the same unit of work; otherwise the
        payment is created pending.

        Args:
            transaction_id: Persisted transaction id

        Returns:
            The new payment, or None if nothing matched or the transaction
            already has an active payment
        """
        with self.store.atomic():
            transaction = self.store.get_transaction(transaction_id)
            if transaction is None or self.store.get_active_payment(transaction_id):
                return None

            rules = [
                LiabilityPaymentRule.from_row(row)
                for row in self.store.list_rules(active_only=True)
            ]
            rule = find_matching_rule(rules, transaction)
            if rule is None:
                return None
            if self.store.get_liability(rule.liability_id) is None:
                logger.warning(f"Rule {rule.id} points at missing liability {rule.liability_id}")
                return None

            status = PaymentStatus.APPLIED if rule.auto_apply else PaymentStatus.PENDING
            payment = self._create(transaction_id, rule.liability_id, status, payment_amount(transaction), rule.id)

        logger.info(
            f"Transaction {transaction_id} matched rule {rule.id}: "
            f"{status.value} payment {payment.id} of {payment.amount} to liability {rule.liability_id}"
        )
        return payment

    def process_transactions(self, transaction_ids: list[int]) -> list[LiabilityPayment]:
        """Run matching for newly inserted transactions, in insert order."""
        payments = []
        for transaction_id in transaction_ids:
            payment = self.process_transaction(transaction_id)
            if payment is not None:
                payments.append(payment)
        return payments

    def create_payment(self, transaction_id: int, liability_id: int, apply: bool = False) -> ActionResult:
        """Manually link a transaction to a liability.

        Args:
            transaction_id: Persisted transaction id
            liability_id: Liability id
            apply: Create the payment applied instead of pending

        Returns:
            ActionResult with the new payment and the liability balance
        """
        with self.store.atomic():
            transaction = self.store.get_transaction(transaction_id)
            if transaction is None:
                return ActionResult.failure(f"Transaction {transaction_id} not found", not_found=True)
            if self.store.get_liability(liability_id) is None:
                return ActionResult.failure(f"Liability {liability_id} not found", not_found=True)
            if self.store.get_active_payment(transaction_id):
                return ActionResult.failure(f"Transaction {transaction_id} already has an active payment")

            amount = payment_amount(transaction)
            if amount == 0:
                return ActionResult.failure("Cannot create a payment for a zero-amount transaction")

            status = PaymentStatus.APPLIED if apply else PaymentStatus.PENDING
            payment = self._create(transaction_id, liability_id, status, amount)
            balance = self._balance(liability_id)

        return ActionResult(success=True, payment=payment, balance=balance)

    # Actions

    def apply_payment(self, payment_id: int) -> ActionResult:
        """pending -> applied; decreases the liability balance by the amount."""
        return self._perform(payment_id, PaymentAction.APPLY)

    def reverse_payment(self, payment_id: int) -> ActionResult:
        """applied -> reversed; restores the amount to the liability balance."""
        return self._perform(payment_id, PaymentAction.REVERSE)

    def skip_payment(self, payment_id: int) -> ActionResult:
        """pending -> skipped; no balance effect."""
        return self._perform(payment_id, PaymentAction.SKIP)

    def perform(self, payment_id: int, action: PaymentAction | str) -> ActionResult:
        """Dispatch an action by name."""
        try:
            action = PaymentAction(action)
        except ValueError:
            return ActionResult.failure(f"Unknown action: {action}")
        return self._perform(payment_id, action)

    def _perform(self, payment_id: int, action: PaymentAction) -> ActionResult:
        """Validate and execute an action as one read-compute-write unit.

        Rejected actions leave the payment and the balance untouched.
        """
        with self.store.atomic():
            row = self.store.get_payment(payment_id)
            if row is None:
                return ActionResult.failure(f"Payment {payment_id} not found", not_found=True)

            payment = LiabilityPayment.from_row(row)
            try:
                new_status = transition(payment.status, action)
            except InvalidTransitionError as e:
                logger.warning(f"Rejected {action.value} on payment {payment_id}: {e}")
                return ActionResult.failure(str(e))

            liability_row = self.store.get_liability(payment.liability_id)
            if liability_row is None:
                return ActionResult.failure(f"Liability {payment.liability_id} not found", not_found=True)

            liability = Liability.from_row(liability_row)
            balance = liability.current_balance + balance_delta(action, payment.amount)

            self.store.update_payment(payment_id, status=new_status.value)
            if balance != liability.current_balance:
                self.store.set_liability_balance(liability.id, balance)

            payment.status = new_status

        logger.info(
            f"Payment {payment_id} {action.value}: liability {liability.id} "
            f"balance {liability.current_balance} -> {balance}"
        )
        return ActionResult(success=True, payment=payment, balance=to_money(balance))

    # Transaction coupling

    def release_transaction_payment(self, transaction_id: int) -> LiabilityPayment | None:
        """Take a transaction's active payment out of effect before a delete.

        Applied payments are reversed (balance restored); pending payments
        are skipped. Must be called inside ``store.atomic()``.

        Returns:
            The released payment, or None if nothing was active
        """
        row = self.store.get_active_payment(transaction_id)
        if row is None:
            return None

        payment = LiabilityPayment.from_row(row)
        if payment.status == PaymentStatus.APPLIED:
            result = self._perform(payment.id, PaymentAction.REVERSE)
        elif payment.status == PaymentStatus.PENDING:
            result = self._perform(payment.id, PaymentAction.SKIP)
        else:
            return None

        return result.payment

    def reprice_pending_payment(self, payment: LiabilityPayment, new_amount: Decimal) -> LiabilityPayment:
        """Follow a transaction amount edit on a pending payment.

        Returns:
            The updated payment (skipped if the new amount is zero)
        """
        if new_amount == 0:
            return self._perform(payment.id, PaymentAction.SKIP).payment

        self.store.update_payment(payment.id, amount=new_amount)
        payment.amount = to_money(new_amount)
        return payment

    # Queries

    def get_payment(self, payment_id: int) -> LiabilityPayment | None:
        row = self.store.get_payment(payment_id)
        return LiabilityPayment.from_row(row) if row else None

    def list_payments(self, liability_id: int | None = None, status: str | None = None) -> list[LiabilityPayment]:
        return [
            LiabilityPayment.from_row(row)
            for row in self.store.list_payments(liability_id=liability_id, status=status)
        ]

    def payments_for_transaction(self, transaction_id: int) -> list[LiabilityPayment]:
        return [
            LiabilityPayment.from_row(row)
            for row in self.store.list_payments_for_transaction(transaction_id)
        ]

    def pending_count(self, liability_id: int | None = None) -> int:
        return self.store.count_pending_payments(liability_id)

    # Internals

    def _create(
        self,
        transaction_id: int,
        liability_id: int,
        status: PaymentStatus,
        amount: Decimal,
        rule_id: int | None = None
    ) -> LiabilityPayment:
        payment_id = self.store.create_payment(
            transaction_id=transaction_id,
            liability_id=liability_id,
            status=status.value,
            amount=amount,
            rule_id=rule_id,
        )
        if status == PaymentStatus.APPLIED:
            liability = Liability.from_row(self.store.get_liability(liability_id))
            self.store.set_liability_balance(liability_id, liability.current_balance - amount)

        return LiabilityPayment.from_row(self.store.get_payment(payment_id))

    def _balance(self, liability_id: int) -> Decimal:
        return Liability.from_row(self.store.get_liability(liability_id)).current_balance
