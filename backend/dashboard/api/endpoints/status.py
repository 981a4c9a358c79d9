"""
Status API endpoint.
Lets the dashboard check that the API and its database are reachable.
"""
import logging
import os
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from dashboard.core.config import settings
from dashboard.db.database import get_session
from dashboard.db.sqlite_health import quick_check_path
from dashboard.services import service_catalog

logger = logging.getLogger(__name__)

router = APIRouter(tags=["status"])


class StorageStatus(BaseModel):
    dialect: str
    connected: bool
    integrity: Optional[str] = None  # SQLite quick_check result
    error: Optional[str] = None


class ApiTestResponse(BaseModel):
    message: str
    environment: Dict[str, bool]
    storage: StorageStatus
    timestamp: str


def _environment_flags() -> Dict[str, bool]:
    """Report which variables are present, never their values."""
    flags = {"DASHBOARD_DATABASE_URL": bool(settings.DATABASE_URL)}
    for service in service_catalog.iter_services():
        if service.env_var:
            flags[service.env_var] = bool(os.environ.get(service.env_var))
    return flags


def _storage_status(session: Session) -> StorageStatus:
    bind = session.get_bind()
    status = StorageStatus(dialect=bind.dialect.name, connected=False)
    try:
        session.connection().execute(text("SELECT 1"))
        status.connected = True
    except SQLAlchemyError as exc:
        logger.warning("Database connectivity check failed: %s", exc)
        status.error = "Database connection failed"
        return status

    database = bind.url.database
    if status.dialect == "sqlite" and database and database != ":memory:":
        try:
            status.integrity = quick_check_path(Path(database))
        except sqlite3.Error as exc:
            logger.warning("SQLite quick_check failed: %s", exc)
            status.integrity = "unavailable"
    return status


@router.get("/test", response_model=ApiTestResponse)
def api_test(session: Session = Depends(get_session)):
    return ApiTestResponse(
        message="API is working",
        environment=_environment_flags(),
        storage=_storage_status(session),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
