import os
import sys
import tempfile
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT_DIR))

# Keep the module-level engine away from the real home directory.
os.environ.setdefault("DASHBOARD_ROOT_DIR", tempfile.mkdtemp(prefix="dashboard-tests-"))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from dashboard.api.api import api_router
from dashboard.core.error_handlers import register_settings_error_handlers
from dashboard.db.database import get_session
from dashboard.db.init_db import init_db
from dashboard.services.api_key_cache import ApiKeyCache
from dashboard.services.settings_service import SettingsService, get_settings_service
from dashboard.services.settings_store import SqlSettingsStore


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def store(engine):
    return SqlSettingsStore(engine)


@pytest.fixture()
def cache():
    return ApiKeyCache(ttl_s=300)


@pytest.fixture()
def settings_service(store, cache):
    return SettingsService(store, cache=cache, user_id="default_user")


def _build_client(settings_service, engine) -> TestClient:
    app = FastAPI()
    app.include_router(api_router, prefix="/api")
    register_settings_error_handlers(app)

    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_settings_service] = lambda: settings_service
    app.dependency_overrides[get_session] = override_get_session
    return TestClient(app)


@pytest.fixture()
def client(settings_service, engine):
    return _build_client(settings_service, engine)


@pytest.fixture()
def make_client(engine):
    """Build a client around a custom SettingsService, e.g. one with a failing store."""
    def factory(settings_service):
        return _build_client(settings_service, engine)
    return factory
