"""
FastAPI Main Application

Entry point for the personal finance statement API.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import (
    uploads_router,
    transactions_router,
    liabilities_router,
    liability_payments_router,
    liability_rules_router,
    preferences_router,
    ai_settings_router,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Finance Statement API...")
    yield
    logger.info("Shutting down Finance Statement API...")


app = FastAPI(
    title="Finance Statement API",
    description="Statement ingestion, categorization and liability payment tracking",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration
cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(uploads_router, prefix="/api")
app.include_router(transactions_router, prefix="/api")
app.include_router(liabilities_router, prefix="/api")
app.include_router(liability_payments_router, prefix="/api")
app.include_router(liability_rules_router, prefix="/api")
app.include_router(preferences_router, prefix="/api")
app.include_router(ai_settings_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Finance Statement API",
        "version": "1.0.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/api")
async def api_info():
    """API information endpoint."""
    return {
        "endpoints": {
            "upload_preview": "/api/upload/preview",
            "upload_commit": "/api/upload",
            "transactions": "/api/transactions",
            "liabilities": "/api/liabilities",
            "liability_payments": "/api/liability-payments",
            "liability_rules": "/api/liability-rules",
            "preferences": "/api/preferences",
            "ai_settings": "/api/ai-settings",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
