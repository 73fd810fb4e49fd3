"""
Main FastAPI application - Print shop ledger balances and reports.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routers import balances, reports
from app.core.config import get_settings
from app.core.logging import setup_logging
from app.domain.errors import InvalidArgumentError, NotFoundError, StorageError
from app.infrastructure.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan - startup and shutdown events."""
    setup_logging(get_settings().log_level)
    init_db()
    logger.info("Print shop ledger API started")
    yield


app = FastAPI(
    title="Print Shop Ledger API",
    description="""
## Print shop ledger, balances and reports

### Features:
- **Balances**: customer, supplier and cash account balances rebuilt from the ledger
- **Batch recalculation** with per-entity failure reporting
- **Reports**: sales, customers and debts, cash flow, inventory, financial statements
- **Export**: CSV downloads of report tables

### Rules:
- Ledger entries are never edited; corrections are new entries
- A balance always equals the signed sum of its entity's ledger
    """,
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(balances.router)
app.include_router(reports.router)


@app.get("/")
def root():
    return {
        "name": "Print Shop Ledger API",
        "version": "0.1.0",
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidArgumentError)
async def invalid_argument_handler(request: Request, exc: InvalidArgumentError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle validation errors."""
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc)}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
