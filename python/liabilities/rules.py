"""
Liability and payment rule management.
"""

import logging

from .models import ActionResult, Liability, LiabilityPaymentRule

logger = logging.getLogger(__name__)


class LiabilityRuleService:
    """Validated create/update/delete of liabilities and their payment rules."""

    def __init__(self, store):
        self.store = store

    # Liabilities

    def list_liabilities(self) -> list[Liability]:
        return [Liability.from_row(row) for row in self.store.list_liabilities()]

    def get_liability(self, liability_id: int) -> Liability | None:
        row = self.store.get_liability(liability_id)
        return Liability.from_row(row) if row else None

    def create_liability(
        self,
        name: str,
        liability_type: str,
        original_amount,
        current_balance=None,
        interest_rate=None,
        monthly_payment=None,
        notes: str | None = None
    ) -> Liability:
        liability_id = self.store.create_liability(
            name=name,
            liability_type=liability_type,
            original_amount=original_amount,
            current_balance=current_balance,
            interest_rate=interest_rate,
            monthly_payment=monthly_payment,
            notes=notes,
        )
        logger.info(f"Created liability {liability_id}: {name}")
        return self.get_liability(liability_id)

    # Rules

    def list_rules(self, liability_id: int | None = None) -> list[LiabilityPaymentRule]:
        return [
            LiabilityPaymentRule.from_row(row)
            for row in self.store.list_rules(liability_id=liability_id)
        ]

    def create_rule(
        self,
        liability_id: int,
        match_merchant: str | None = None,
        match_description: str | None = None,
        match_account_id: int | None = None,
        rule_description: str | None = None,
        auto_apply: bool = True
    ) -> ActionResult:
        """Create a payment rule for an existing liability.

        Returns:
            ActionResult with the stored rule
        """
        rule = LiabilityPaymentRule(
            id=None,
            liability_id=liability_id,
            match_merchant=match_merchant or None,
            match_description=match_description or None,
            match_account_id=match_account_id,
            rule_description=rule_description,
            auto_apply=auto_apply,
        )

        error = rule.validate()
        if error:
            return ActionResult.failure(error)
        if self.store.get_liability(liability_id) is None:
            return ActionResult.failure(f"Liability {liability_id} not found", not_found=True)

        rule_id = self.store.create_rule(
            liability_id,
            match_merchant=rule.match_merchant,
            match_description=rule.match_description,
            match_account_id=rule.match_account_id,
            rule_description=rule.rule_description,
            auto_apply=rule.auto_apply,
            is_active=True,
        )
        logger.info(f"Created payment rule {rule_id} for liability {liability_id}")
        return ActionResult(success=True, rule=LiabilityPaymentRule.from_row(self.store.get_rule(rule_id)))

    def update_rule(self, rule_id: int, updates: dict) -> ActionResult:
        """Update a rule, rejecting changes that leave it unable to match."""
        with self.store.atomic():
            row = self.store.get_rule(rule_id)
            if row is None:
                return ActionResult.failure(f"Rule {rule_id} not found", not_found=True)

            merged = LiabilityPaymentRule.from_row({**row, **updates})
            error = merged.validate()
            if error:
                return ActionResult.failure(error)

            self.store.update_rule(rule_id, updates)
            rule = LiabilityPaymentRule.from_row(self.store.get_rule(rule_id))

        return ActionResult(success=True, rule=rule)

    def delete_rule(self, rule_id: int) -> ActionResult:
        if not self.store.delete_rule(rule_id):
            return ActionResult.failure(f"Rule {rule_id} not found", not_found=True)
        logger.info(f"Deleted payment rule {rule_id}")
        return ActionResult(success=True)
