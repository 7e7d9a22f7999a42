"""
Transactions API Routes

Provides endpoints for viewing, editing and deleting transactions. Edits go
through the transaction editor so liability payments follow amount changes.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ledger import LedgerStore
from liabilities import LiabilityPaymentService, TransactionEditor

from ..database import get_store

router = APIRouter(prefix="/transactions", tags=["transactions"])


class Transaction(BaseModel):
    """Transaction model."""

    id: int
    account_id: int | None
    date: str
    description: str
    amount: float
    category: str | None
    subcategory: str | None
    merchant: str | None
    is_transfer: bool
    notes: str | None
    created_at: datetime | None


class TransactionUpdate(BaseModel):
    """Editable transaction fields; unset fields are left alone."""

    account_id: int | None = None
    date: str | None = None
    description: str | None = None
    amount: float | None = None
    category: str | None = None
    subcategory: str | None = None
    merchant: str | None = None
    is_transfer: bool | None = None
    notes: str | None = None


class BulkUpdateRequest(BaseModel):
    """Same edit applied to several transactions."""

    ids: list[int]
    updates: TransactionUpdate


class BulkDeleteRequest(BaseModel):
    ids: list[int]


def _to_model(row: dict) -> Transaction:
    return Transaction(
        id=row["id"],
        account_id=row["account_id"],
        date=row["date"],
        description=row["description"],
        amount=float(row["amount"]),
        category=row["category"],
        subcategory=row["subcategory"],
        merchant=row["merchant"],
        is_transfer=bool(row["is_transfer"]),
        notes=row["notes"],
        created_at=row["created_at"],
    )


@router.get("", response_model=list[Transaction])
async def list_transactions(
    account_id: int | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    store: LedgerStore = Depends(get_store),
) -> list[Transaction]:
    """List transactions, newest first.

    Args:
        account_id: Filter by account
        limit: Maximum number of rows
        store: Ledger store

    Returns:
        Transactions
    """
    return [_to_model(row) for row in store.list_transactions(account_id=account_id, limit=limit)]


@router.post("/bulk-update")
async def bulk_update_transactions(
    request: BulkUpdateRequest,
    store: LedgerStore = Depends(get_store),
) -> dict:
    """Apply one edit to many transactions; each outcome is reported separately."""
    updates = request.updates.model_dump(exclude_unset=True)
    return TransactionEditor(store).bulk_update(request.ids, updates).to_dict()


@router.post("/bulk-delete")
async def bulk_delete_transactions(
    request: BulkDeleteRequest,
    store: LedgerStore = Depends(get_store),
) -> dict:
    """Delete many transactions; each outcome is reported separately."""
    return TransactionEditor(store).bulk_delete(request.ids).to_dict()


@router.get("/{transaction_id}", response_model=Transaction)
async def get_transaction(
    transaction_id: int,
    store: LedgerStore = Depends(get_store),
) -> Transaction:
    row = store.get_transaction(transaction_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return _to_model(row)


@router.patch("/{transaction_id}")
async def update_transaction(
    transaction_id: int,
    request: TransactionUpdate,
    store: LedgerStore = Depends(get_store),
) -> dict:
    """Edit a transaction.

    Args:
        transaction_id: Transaction id
        request: Fields to change
        store: Ledger store

    Returns:
        Edit outcome, including any reversed or newly created payment
    """
    result = TransactionEditor(store).update_transaction(
        transaction_id, request.model_dump(exclude_unset=True)
    )
    if result.not_found:
        raise HTTPException(status_code=404, detail=result.error)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result.to_dict()


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: int,
    store: LedgerStore = Depends(get_store),
) -> dict:
    result = TransactionEditor(store).delete_transaction(transaction_id)
    if result.not_found:
        raise HTTPException(status_code=404, detail=result.error)
    return result.to_dict()


@router.get("/{transaction_id}/payments")
async def get_transaction_payments(
    transaction_id: int,
    store: LedgerStore = Depends(get_store),
) -> list[dict]:
    """Liability payment history of a transaction."""
    payments = LiabilityPaymentService(store).payments_for_transaction(transaction_id)
    return [p.to_dict() for p in payments]
