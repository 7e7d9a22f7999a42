"""
FastAPI Backend for the Finance Statement API

Provides REST endpoints for statement upload, transaction edits, liability
payments and categorization preferences.
"""

from .main import app

__all__ = ["app"]
