"""
Transaction Edits Module

Edits and deletes of persisted transactions that keep liability payments and
balances consistent, and feed category corrections to the preference learner.
"""

import logging
from dataclasses import dataclass, field

from ledger.fingerprint import to_money
from statement_processor.preference_learner import PreferenceLearner

from .matcher import payment_amount
from .models import LiabilityPayment, PaymentStatus
from .payment_service import LiabilityPaymentService

logger = logging.getLogger(__name__)


@dataclass
class EditResult:
    """Outcome of editing or deleting one transaction."""

    transaction_id: int
    success: bool
    error: str | None = None
    not_found: bool = False
    reversed_payment_id: int | None = None
    new_payment_id: int | None = None
    learned_preference_id: int | None = None

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "success": self.success,
            "error": self.error,
            "reversed_payment_id": self.reversed_payment_id,
            "new_payment_id": self.new_payment_id,
            "learned_preference_id": self.learned_preference_id,
        }


@dataclass
class BulkResult:
    """Per-transaction outcomes of a bulk operation."""

    results: list[EditResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    def to_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


class TransactionEditor:
    """Applies transaction edits with liability payment coupling."""

    def __init__(self, store, payments: LiabilityPaymentService | None = None, learner: PreferenceLearner | None = None):
        """Initialize the editor.

        Args:
            store: Ledger store
            payments: Payment service (created from the store if not provided)
            learner: Preference learner (created from the store if not provided)
        """
        self.store = store
        self.payments = payments or LiabilityPaymentService(store)
        self.learner = learner or PreferenceLearner(store)

    def update_transaction(self, transaction_id: int, updates: dict) -> EditResult:
        """Edit one transaction.

        When the amount changes and the transaction has an applied payment,
        the payment is reversed and matching re-runs against the new amount,
        all in one unit of work. A pending payment follows the new amount.
        A category change is learned as a merchant preference.

        Args:
            transaction_id: Transaction id
            updates: Field -> new value

        Returns:
            EditResult
        """
        result = EditResult(transaction_id=transaction_id, success=True)

        with self.store.atomic():
            existing = self.store.get_transaction(transaction_id)
            if existing is None:
                return EditResult(
                    transaction_id=transaction_id,
                    success=False,
                    error=f"Transaction {transaction_id} not found",
                    not_found=True,
                )

            amount_changed = (
                updates.get("amount") is not None
                and to_money(updates["amount"]) != to_money(existing["amount"])
            )

            self.store.update_transaction(transaction_id, updates)

            if amount_changed:
                self._follow_amount_change(transaction_id, result)

            new_category = updates.get("category")
            if new_category and new_category != existing["category"]:
                result.learned_preference_id = self.learner.learn_from_correction(
                    merchant=updates.get("merchant", existing["merchant"]),
                    description=updates.get("description", existing["description"]),
                    original_category=existing["category"],
                    new_category=new_category,
                    subcategory=updates.get("subcategory", existing["subcategory"]),
                    is_transfer=bool(updates.get("is_transfer", existing["is_transfer"])),
                )

        return result

    def _follow_amount_change(self, transaction_id: int, result: EditResult) -> None:
        row = self.store.get_active_payment(transaction_id)
        if row is None:
            return

        payment = LiabilityPayment.from_row(row)
        if payment.status == PaymentStatus.APPLIED:
            reversed_payment = self.payments.release_transaction_payment(transaction_id)
            if reversed_payment is None:
                return
            result.reversed_payment_id = reversed_payment.id
            new_payment = self.payments.process_transaction(transaction_id)
            if new_payment is not None:
                result.new_payment_id = new_payment.id
            logger.info(
                f"Amount edit on transaction {transaction_id}: reversed payment {payment.id}"
                + (f", new payment {new_payment.id}" if new_payment else "")
            )
        elif payment.status == PaymentStatus.PENDING:
            transaction = self.store.get_transaction(transaction_id)
            self.payments.reprice_pending_payment(payment, payment_amount(transaction))

    def delete_transaction(self, transaction_id: int) -> EditResult:
        """Delete one transaction, reversing or skipping its payment first."""
        result = EditResult(transaction_id=transaction_id, success=True)

        with self.store.atomic():
            if self.store.get_transaction(transaction_id) is None:
                return EditResult(
                    transaction_id=transaction_id,
                    success=False,
                    error=f"Transaction {transaction_id} not found",
                    not_found=True,
                )

            released = self.payments.release_transaction_payment(transaction_id)
            if released is not None and released.status == PaymentStatus.REVERSED:
                result.reversed_payment_id = released.id

            self.store.delete_transaction(transaction_id)

        logger.info(f"Deleted transaction {transaction_id}")
        return result

    def bulk_update(self, transaction_ids: list[int], updates: dict) -> BulkResult:
        """Apply the same edit to many transactions independently."""
        bulk = BulkResult()
        for transaction_id in transaction_ids:
            bulk.results.append(self._guarded(self.update_transaction, transaction_id, updates))
        return bulk

    def bulk_delete(self, transaction_ids: list[int]) -> BulkResult:
        """Delete many transactions independently."""
        bulk = BulkResult()
        for transaction_id in transaction_ids:
            bulk.results.append(self._guarded(self.delete_transaction, transaction_id))
        return bulk

    def _guarded(self, operation, transaction_id: int, *args) -> EditResult:
        # each item runs in its own unit of work; a failure rolls back only that item
        try:
            return operation(transaction_id, *args)
        except Exception as e:
            logger.error(f"Failed to process transaction {transaction_id}: {e}")
            return EditResult(transaction_id=transaction_id, success=False, error=str(e))
