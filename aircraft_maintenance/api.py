"""
FastAPI application for the Aircraft Maintenance Tracker.
"""

from __future__ import annotations

import importlib.metadata
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Dict, Type

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import get_settings
from .db.base import get_db, init_database
from .fleet.errors import (
    BrokenReferenceError,
    ConcurrentUpdateError,
    DuplicateKeyError,
    MaintenanceError,
    NotFoundError,
    RetryableInconsistency,
    ValidationError,
)
from .fleet.routes import router as fleet_router

logger = structlog.get_logger()

settings = get_settings()

ERROR_STATUS_CODES: Dict[Type[MaintenanceError], int] = {
    ValidationError: 422,
    DuplicateKeyError: 409,
    BrokenReferenceError: 422,
    NotFoundError: 404,
    RetryableInconsistency: 503,
    ConcurrentUpdateError: 409,
}


def status_code_for(exc: MaintenanceError) -> int:
    for error_cls, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_cls):
            return status_code
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting Aircraft Maintenance Tracker")

    try:
        init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Failed to start application: {e}")
        raise

    yield

    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    description="Aircraft condition, issue and verifiable maintenance task records",
    version=importlib.metadata.version("aircraft-maintenance"),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MaintenanceError)
async def maintenance_error_handler(
    request: Request, exc: MaintenanceError
) -> JSONResponse:
    """Translate domain errors into HTTP responses."""
    return JSONResponse(status_code=status_code_for(exc), content=exc.to_dict())


@app.get("/healthz")
def healthz(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Health check endpoint, including a database round-trip."""
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning("healthz_db_unreachable", error=str(e))
        db_ok = False
    return {"ok": db_ok, "db": db_ok}


@app.get("/version")
def version() -> Dict[str, str]:
    """Return the version of the application."""
    return {"version": importlib.metadata.version("aircraft-maintenance")}


app.include_router(fleet_router)
