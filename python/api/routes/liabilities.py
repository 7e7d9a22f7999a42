"""
Liabilities API Routes

Provides endpoints for listing and creating tracked liabilities.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ledger import LedgerStore
from liabilities import LiabilityPaymentService, LiabilityRuleService

from ..database import get_store

router = APIRouter(prefix="/liabilities", tags=["liabilities"])


class LiabilityCreate(BaseModel):
    """Request to create a liability."""

    name: str
    type: str
    original_amount: float
    current_balance: float | None = None
    interest_rate: float | None = None
    monthly_payment: float | None = None
    notes: str | None = None


@router.get("")
async def list_liabilities(store: LedgerStore = Depends(get_store)) -> list[dict]:
    """List liabilities with their pending payment counts."""
    payments = LiabilityPaymentService(store)
    return [
        {**liability.to_dict(), "pending_payments": payments.pending_count(liability.id)}
        for liability in LiabilityRuleService(store).list_liabilities()
    ]


@router.post("", status_code=201)
async def create_liability(
    request: LiabilityCreate,
    store: LedgerStore = Depends(get_store),
) -> dict:
    liability = LiabilityRuleService(store).create_liability(
        name=request.name,
        liability_type=request.type,
        original_amount=request.original_amount,
        current_balance=request.current_balance,
        interest_rate=request.interest_rate,
        monthly_payment=request.monthly_payment,
        notes=request.notes,
    )
    return liability.to_dict()


@router.get("/{liability_id}")
async def get_liability(
    liability_id: int,
    store: LedgerStore = Depends(get_store),
) -> dict:
    liability = LiabilityRuleService(store).get_liability(liability_id)
    if liability is None:
        raise HTTPException(status_code=404, detail="Liability not found")
    return liability.to_dict()
