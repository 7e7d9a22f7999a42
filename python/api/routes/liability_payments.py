"""
Liability Payments API Routes

Provides endpoints for reviewing detected payments and moving them through
the apply / reverse / skip lifecycle.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ledger import LedgerStore
from liabilities import ActionResult, LiabilityPaymentService, PaymentAction, PaymentStatus

from ..database import get_store

router = APIRouter(prefix="/liability-payments", tags=["liability-payments"])


class PaymentCreate(BaseModel):
    """Request to link a transaction to a liability by hand."""

    transaction_id: int
    liability_id: int
    apply: bool = False


def _respond(result: ActionResult) -> dict:
    if result.not_found:
        raise HTTPException(status_code=404, detail=result.error)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result.to_dict()


@router.get("")
async def list_payments(
    liability_id: int | None = Query(None),
    status: PaymentStatus | None = Query(None),
    store: LedgerStore = Depends(get_store),
) -> list[dict]:
    """List payments, newest first.

    Args:
        liability_id: Filter by liability
        status: Filter by status
        store: Ledger store

    Returns:
        Payments
    """
    payments = LiabilityPaymentService(store).list_payments(
        liability_id=liability_id,
        status=status.value if status else None,
    )
    return [p.to_dict() for p in payments]


@router.get("/pending-count")
async def pending_count(
    liability_id: int | None = Query(None),
    store: LedgerStore = Depends(get_store),
) -> dict:
    return {"pending": LiabilityPaymentService(store).pending_count(liability_id)}


@router.post("", status_code=201)
async def create_payment(
    request: PaymentCreate,
    store: LedgerStore = Depends(get_store),
) -> dict:
    result = LiabilityPaymentService(store).create_payment(
        request.transaction_id, request.liability_id, apply=request.apply
    )
    return _respond(result)


@router.post("/{payment_id}/{action}")
async def perform_action(
    payment_id: int,
    action: PaymentAction,
    store: LedgerStore = Depends(get_store),
) -> dict:
    """Apply, reverse or skip a payment.

    Illegal transitions are rejected with 400 and change nothing.
    """
    return _respond(LiabilityPaymentService(store).perform(payment_id, action))
