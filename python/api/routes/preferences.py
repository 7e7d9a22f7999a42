"""
Preferences API Routes

Provides CRUD endpoints for natural-language categorization preferences,
both user-written and learned from corrections.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator

from ledger import LedgerStore

from ..database import get_store

router = APIRouter(prefix="/preferences", tags=["preferences"])


class Preference(BaseModel):
    """Preference model."""

    id: int
    instruction: str
    source: str
    created_at: datetime | None
    updated_at: datetime | None


class PreferenceRequest(BaseModel):
    instruction: str

    @field_validator("instruction")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Instruction must not be empty")
        return value


def _to_model(row: dict) -> Preference:
    return Preference(
        id=row["id"],
        instruction=row["instruction"],
        source=row["source"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


@router.get("", response_model=list[Preference])
async def list_preferences(store: LedgerStore = Depends(get_store)) -> list[Preference]:
    """List preferences, most recently updated first."""
    return [_to_model(row) for row in store.list_preferences()]


@router.post("", response_model=Preference, status_code=201)
async def create_preference(
    request: PreferenceRequest,
    store: LedgerStore = Depends(get_store),
) -> Preference:
    preference_id = store.add_preference(request.instruction, source="user")
    return _to_model(store.get_preference(preference_id))


@router.put("/{preference_id}", response_model=Preference)
async def update_preference(
    preference_id: int,
    request: PreferenceRequest,
    store: LedgerStore = Depends(get_store),
) -> Preference:
    if not store.update_preference(preference_id, request.instruction):
        raise HTTPException(status_code=404, detail="Preference not found")
    return _to_model(store.get_preference(preference_id))


@router.delete("/{preference_id}")
async def delete_preference(
    preference_id: int,
    store: LedgerStore = Depends(get_store),
) -> dict:
    if not store.delete_preference(preference_id):
        raise HTTPException(status_code=404, detail="Preference not found")
    return {"message": "Preference deleted", "preference_id": preference_id}
