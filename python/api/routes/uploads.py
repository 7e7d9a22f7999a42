"""
Upload API Routes

Statement upload preview (parse, flag duplicates, categorize) and commit
(persist reviewed transactions, learn corrections, match liability payments).
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, Field

from ledger import LedgerStore
from statement_processor import CategorizedTransaction, StatementIngestor

from ..database import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["upload"])


class ReviewedTransaction(BaseModel):
    """A transaction as returned by preview, possibly edited by the reviewer."""

    date: str
    description: str
    amount: float
    category: str | None = None
    subcategory: str | None = None
    merchant: str | None = None
    is_transfer: bool = False
    raw_data: dict[str, Any] = Field(default_factory=dict)
    original_category: str | None = None
    confidence: float | None = None
    is_duplicate: bool = False
    include_duplicate: bool = False


class CommitRequest(BaseModel):
    """Request to import reviewed transactions."""

    transactions: list[ReviewedTransaction]
    account_id: int | None = None
    account_name: str | None = None
    account_type: str = "bank"
    institution: str | None = None
    statement_period_start: str | None = None
    statement_period_end: str | None = None
    filename: str | None = None


def get_ingestor(store: LedgerStore = Depends(get_store)) -> StatementIngestor:
    return StatementIngestor(store)


@router.put("/preview")
async def preview_upload(
    file: UploadFile = File(...),
    ingestor: StatementIngestor = Depends(get_ingestor),
) -> dict:
    """Parse and categorize an uploaded statement for review.

    Args:
        file: CSV or PDF statement
        ingestor: Statement ingestor

    Returns:
        Preview with every transaction, duplicates flagged
    """
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="No file provided")

    preview = ingestor.preview(file.filename or "upload.csv", content)
    return preview.to_dict()


@router.post("")
async def commit_upload(
    request: CommitRequest,
    ingestor: StatementIngestor = Depends(get_ingestor),
) -> dict:
    """Import reviewed transactions.

    Args:
        request: Reviewed transactions and account details
        ingestor: Statement ingestor

    Returns:
        Import summary
    """
    result = ingestor.commit(
        [CategorizedTransaction.from_dict(t.model_dump()) for t in request.transactions],
        account_type=request.account_type,
        institution=request.institution,
        account_id=request.account_id,
        account_name=request.account_name,
        statement_period_start=request.statement_period_start,
        statement_period_end=request.statement_period_end,
        filename=request.filename,
    )

    if not result.success:
        status_code = 404 if result.error and "not found" in result.error else 400
        raise HTTPException(status_code=status_code, detail=result.error)

    return result.to_dict()
