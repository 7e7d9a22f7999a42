"""
Liability Rules API Routes

Provides CRUD endpoints for the rules that recognize liability payments.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ledger import LedgerStore
from liabilities import ActionResult, LiabilityRuleService

from ..database import get_store

router = APIRouter(prefix="/liability-rules", tags=["liability-rules"])


class RuleCreate(BaseModel):
    """Request to create a payment rule."""

    liability_id: int
    match_merchant: str | None = None
    match_description: str | None = None
    match_account_id: int | None = None
    rule_description: str | None = None
    auto_apply: bool = True


class RuleUpdate(BaseModel):
    match_merchant: str | None = None
    match_description: str | None = None
    match_account_id: int | None = None
    rule_description: str | None = None
    auto_apply: bool | None = None
    is_active: bool | None = None


def _respond(result: ActionResult) -> dict:
    if result.not_found:
        raise HTTPException(status_code=404, detail=result.error)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result.rule.to_dict() if result.rule else {"success": True}


@router.get("")
async def list_rules(
    liability_id: int | None = Query(None),
    store: LedgerStore = Depends(get_store),
) -> list[dict]:
    return [rule.to_dict() for rule in LiabilityRuleService(store).list_rules(liability_id)]


@router.post("", status_code=201)
async def create_rule(
    request: RuleCreate,
    store: LedgerStore = Depends(get_store),
) -> dict:
    """Create a rule; at least one of merchant or description must be set."""
    return _respond(LiabilityRuleService(store).create_rule(**request.model_dump()))


@router.patch("/{rule_id}")
async def update_rule(
    rule_id: int,
    request: RuleUpdate,
    store: LedgerStore = Depends(get_store),
) -> dict:
    return _respond(
        LiabilityRuleService(store).update_rule(rule_id, request.model_dump(exclude_unset=True))
    )


@router.delete("/{rule_id}")
async def delete_rule(
    rule_id: int,
    store: LedgerStore = Depends(get_store),
) -> dict:
    return _respond(LiabilityRuleService(store).delete_rule(rule_id))
