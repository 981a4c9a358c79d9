from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from sqlmodel import create_engine

from dashboard.core.config import settings


def build_engine(url: str, timeout_s: float = 5.0) -> Engine:
    """Create the settings engine for a SQLite file or a Postgres server."""
    if url.startswith("sqlite"):
        # check_same_thread=False lets the threadpool that runs sync handlers
        # share the SQLite file. NullPool closes connections right away so the
        # file is never held open between requests.
        sqlite_engine = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False, "timeout": timeout_s},
            poolclass=NullPool,
        )
        event.listen(sqlite_engine, "connect", _set_sqlite_pragma)
        return sqlite_engine

    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_timeout=timeout_s,
        connect_args={"connect_timeout": int(max(1, timeout_s))},
    )


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


# Make sure the metadata directory exists before the SQLite file is opened.
if settings.uses_sqlite:
    settings.ensure_dirs()

engine = build_engine(settings.database_url, settings.DATABASE_TIMEOUT_S)
