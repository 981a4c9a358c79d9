from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable, Optional


_SQLITE_CORRUPTION_MARKERS = (
    "database disk image is malformed",
    "file is not a database",
    "malformed database schema",
    "database corruption",
    "database is corrupt",
)


def is_probable_sqlite_corruption_error(exc: BaseException) -> bool:
    text = " | ".join(_iter_exception_text(exc)).lower()
    return any(marker in text for marker in _SQLITE_CORRUPTION_MARKERS)


def quick_check_path(db_path: Path, *, timeout_s: float = 5.0) -> str:
    """
    Run ``PRAGMA quick_check`` against a SQLite file.

    Returns "ok", "missing", or the problems SQLite reported, one per line.
    """

    if not db_path.exists():
        return "missing"
    with sqlite3.connect(str(db_path), timeout=timeout_s) as conn:
        return _sqlite_quick_check(conn)


def _sqlite_quick_check(conn: sqlite3.Connection) -> str:
    rows = conn.execute("PRAGMA quick_check;").fetchall()
    if rows == [("ok",)]:
        return "ok"
    return "\n".join(str(row[0]) for row in rows)


def _iter_exception_text(exc: BaseException) -> Iterable[str]:
    seen: set[int] = set()

    def walk(e: Optional[BaseException]) -> Iterable[str]:
        if e is None:
            return
        obj_id = id(e)
        if obj_id in seen:
            return
        seen.add(obj_id)
        yield str(e)
        orig = getattr(e, "orig", None)
        if isinstance(orig, BaseException):
            yield from walk(orig)
        yield from walk(getattr(e, "__cause__", None))
        yield from walk(getattr(e, "__context__", None))

    yield from walk(exc)
