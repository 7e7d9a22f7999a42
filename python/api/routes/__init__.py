"""
API Routes Package

Contains all route modules for the finance API.
"""

from .uploads import router as uploads_router
from .transactions import router as transactions_router
from .liabilities import router as liabilities_router
from .liability_payments import router as liability_payments_router
from .liability_rules import router as liability_rules_router
from .preferences import router as preferences_router
from .ai_settings import router as ai_settings_router

__all__ = [
    "uploads_router",
    "transactions_router",
    "liabilities_router",
    "liability_payments_router",
    "liability_rules_router",
    "preferences_router",
    "ai_settings_router",
]
