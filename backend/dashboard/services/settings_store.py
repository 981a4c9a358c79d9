"""Persistence of per-service credential records.

Records are keyed by the natural key ``(user_id, service_name)``. The table
carries a unique constraint on that pair and upserts go through the database's
own ``ON CONFLICT`` handling, so concurrent writers for the same key can never
produce two rows: the last writer wins.

Callers program against :class:`SettingsStore`; :class:`SqlSettingsStore` is the
only backend and works with any SQLAlchemy URL (SQLite locally, Postgres in
production, including a Supabase database).
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from dashboard.db.sqlite_health import is_probable_sqlite_corruption_error
from dashboard.models.user_setting import UserSetting, utc_now

logger = logging.getLogger(__name__)


class SettingsError(Exception):
    """Base class for errors the HTTP layer reports to the client."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class SettingValidationError(SettingsError):
    status_code = 400
    default_message = "Service name is required"


class SettingNotFound(SettingsError):
    status_code = 404
    default_message = "Service not found"

    def __init__(self, service_name: str = "", message: Optional[str] = None):
        self.service_name = service_name
        super().__init__(message)


class StorageUnavailable(SettingsError):
    status_code = 500
    default_message = "Database connection failed. Please check your database configuration."


def require_service_name(service_name: Optional[str]) -> str:
    if not service_name or not service_name.strip():
        raise SettingValidationError()
    return service_name


class SettingsStore(ABC):
    """Storage-agnostic contract for credential records."""

    @abstractmethod
    def list(self, user_id: str) -> List[UserSetting]:
        """Return every record of ``user_id``; empty when there are none."""

    @abstractmethod
    def get(self, user_id: str, service_name: str) -> UserSetting:
        """Return the record for the key or raise :class:`SettingNotFound`."""

    @abstractmethod
    def upsert(
        self,
        user_id: str,
        service_name: str,
        api_key: Optional[str] = None,
        additional_config: Optional[Dict[str, Any]] = None,
    ) -> UserSetting:
        """Insert or overwrite the record for the key, keeping ``id`` and ``created_at``."""

    @abstractmethod
    def delete(self, user_id: str, service_name: str) -> None:
        """Remove the record for the key. Missing keys are not an error."""


class SqlSettingsStore(SettingsStore):
    """Settings store backed by the ``user_settings`` table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def list(self, user_id: str) -> List[UserSetting]:
        with self._storage_errors("list settings"):
            with Session(self.engine) as session:
                return list(
                    session.exec(
                        select(UserSetting)
                        .where(UserSetting.user_id == user_id)
                        .order_by(UserSetting.id)
                    ).all()
                )

    def get(self, user_id: str, service_name: str) -> UserSetting:
        with self._storage_errors("fetch setting"):
            setting = self._find(user_id, service_name)
        if setting is None:
            raise SettingNotFound(service_name)
        return setting

    def upsert(
        self,
        user_id: str,
        service_name: str,
        api_key: Optional[str] = None,
        additional_config: Optional[Dict[str, Any]] = None,
    ) -> UserSetting:
        service_name = require_service_name(service_name)
        values = {
            "api_key": api_key or "",
            "additional_config": dict(additional_config or {}),
        }

        with self._storage_errors("save setting"):
            if self.dialect in ("sqlite", "postgresql"):
                self._upsert_on_conflict(user_id, service_name, values)
            else:
                self._upsert_select_then_write(user_id, service_name, values)
            setting = self._find(user_id, service_name)

        if setting is None:
            # Only possible if a concurrent delete won the race right after our write.
            raise StorageUnavailable("Setting could not be read back after saving")
        logger.info("Saved settings for service %r", service_name)
        return setting

    def delete(self, user_id: str, service_name: str) -> None:
        table = UserSetting.__table__
        with self._storage_errors("delete setting"):
            with self.engine.begin() as conn:
                result = conn.execute(
                    table.delete().where(
                        table.c.user_id == user_id,
                        table.c.service_name == service_name,
                    )
                )
        if result.rowcount:
            logger.info("Deleted settings for service %r", service_name)

    def _find(self, user_id: str, service_name: str) -> Optional[UserSetting]:
        with Session(self.engine) as session:
            return session.exec(
                select(UserSetting).where(
                    UserSetting.user_id == user_id,
                    UserSetting.service_name == service_name,
                )
            ).first()

    def _upsert_on_conflict(self, user_id: str, service_name: str, values: Dict[str, Any]) -> None:
        table = UserSetting.__table__
        insert = pg_insert if self.dialect == "postgresql" else sqlite_insert
        now = utc_now()

        stmt = insert(table).values(
            user_id=user_id,
            service_name=service_name,
            created_at=now,
            updated_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.user_id, table.c.service_name],
            set_={
                "api_key": stmt.excluded.api_key,
                "additional_config": stmt.excluded.additional_config,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)

    def _upsert_select_then_write(self, user_id: str, service_name: str, values: Dict[str, Any]) -> None:
        # Dialects without ON CONFLICT: the unique constraint still rejects a
        # duplicate insert, in which case the other writer's row is updated instead.
        for attempt in range(2):
            try:
                with Session(self.engine) as session:
                    setting = session.exec(
                        select(UserSetting).where(
                            UserSetting.user_id == user_id,
                            UserSetting.service_name == service_name,
                        )
                    ).first()
                    if setting:
                        setting.api_key = values["api_key"]
                        setting.additional_config = values["additional_config"]
                        setting.updated_at = utc_now()
                    else:
                        setting = UserSetting(user_id=user_id, service_name=service_name, **values)
                    session.add(setting)
                    session.commit()
                return
            except IntegrityError:
                if attempt:
                    raise
                logger.info("Concurrent insert for service %r, retrying as update", service_name)

    @contextmanager
    def _storage_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except json.JSONDecodeError as exc:
            logger.exception("Stored settings are not valid JSON while trying to %s", action)
            raise StorageUnavailable("Stored settings data is malformed") from exc
        except SQLAlchemyError as exc:
            if is_probable_sqlite_corruption_error(exc):
                logger.exception("Settings database appears corrupt while trying to %s", action)
                raise StorageUnavailable("Settings database is corrupt") from exc
            logger.exception("Failed to %s", action)
            raise StorageUnavailable() from exc
