"""
AI Settings API Routes

Stores the Anthropic API key and model used by categorization and PDF
extraction. Stored values take precedence over the environment.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ledger import LedgerStore
from statement_processor.ai_settings import API_KEY_SETTING, MODEL_SETTING, resolve_ai_settings

from ..database import get_store

router = APIRouter(prefix="/ai-settings", tags=["ai-settings"])


class AISettingsUpdate(BaseModel):
    """Empty strings clear a stored value."""

    anthropic_api_key: str | None = None
    model: str | None = None


def _mask(key: str | None) -> str | None:
    if not key:
        return None
    return f"{key[:7]}...{key[-4:]}" if len(key) > 12 else "****"


@router.get("")
async def get_ai_settings(store: LedgerStore = Depends(get_store)) -> dict:
    """Effective settings; the API key is masked."""
    settings = resolve_ai_settings(store)
    return {
        "configured": settings.enabled,
        "anthropic_api_key": _mask(settings.api_key),
        "model": settings.model,
    }


@router.put("")
async def update_ai_settings(
    request: AISettingsUpdate,
    store: LedgerStore = Depends(get_store),
) -> dict:
    for key, value in ((API_KEY_SETTING, request.anthropic_api_key), (MODEL_SETTING, request.model)):
        if value is None:
            continue
        if value.strip():
            store.set_ai_setting(key, value.strip())
        else:
            store.delete_ai_setting(key)

    return await get_ai_settings(store)
