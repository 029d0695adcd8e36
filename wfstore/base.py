"""Database access shared by every store: dialect helpers and query calls."""

from __future__ import annotations

import enum
import logging
import sqlite3
from typing import Any, Iterable, Sequence

log = logging.getLogger(__name__)


class HTTPError(Exception):
    """An error that carries the HTTP status it should be reported with."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"HTTPError({self.status!r}, {self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HTTPError):
            return NotImplemented
        return (self.status, self.message) == (other.status, other.message)

    def __hash__(self) -> int:
        return hash((self.status, self.message))


class Driver(str, enum.Enum):
    """Supported database drivers."""

    MYSQL = "mysql"
    SQLITE = "sqlite3"


def _to_format_style(query: str) -> str:
    """Rewrite ``?`` placeholders as ``%s`` and escape literal ``%`` signs."""
    out = []
    quote = None
    for ch in query:
        if quote:
            if ch == "%":
                out.append("%%")
                continue
            if ch == quote:
                quote = None
            out.append(ch)
        elif ch in ("'", '"'):
            quote = ch
            out.append(ch)
        elif ch == "?":
            out.append("%s")
        elif ch == "%":
            out.append("%%")
        else:
            out.append(ch)
    return "".join(out)


class Database:
    """A DB-API connection together with the SQL dialect it speaks.

    Statements run outside of an explicit transaction are committed at once:
    SQLite connections are switched to autocommit mode, and connections that
    offer an ``autocommit()`` method have it turned on.
    """

    def __init__(self, connection: Any, driver: Driver | str = Driver.SQLITE) -> None:
        self.connection = connection
        self.driver = Driver(driver)
        if isinstance(connection, sqlite3.Connection):
            connection.isolation_level = None
        else:
            autocommit = getattr(connection, "autocommit", None)
            if callable(autocommit):
                autocommit(True)

    @property
    def is_sqlite(self) -> bool:
        return self.driver is Driver.SQLITE

    def now(self) -> str:
        """SQL expression for the current time."""
        if self.is_sqlite:
            return "strftime('%Y-%m-%d %H:%M:%S','now')"
        return "NOW()"

    def clip(self, field: str, length: int) -> str:
        """SQL expression for the first characters of a field."""
        if self.is_sqlite:
            return f"SUBSTR({field}, 0, {length})"
        return f"LEFT({field}, {length})"

    def upsert(self, *args: str) -> str:
        """SQL clause that turns an INSERT into an update on key conflict."""
        if self.is_sqlite:
            return "ON CONFLICT(" + ", ".join(args) + ") DO UPDATE SET"
        return "ON DUPLICATE KEY UPDATE"

    def date_add(self, amount: int, unit: str) -> str:
        """SQL expression for now plus an interval."""
        if self.is_sqlite:
            return f"DATETIME('now', '{amount} {unit}')"
        return f"DATE_ADD(NOW(), INTERVAL {amount} {unit})"

    def date_sub(self, amount: int, unit: str) -> str:
        """SQL expression for now minus an interval."""
        if self.is_sqlite:
            return f"DATETIME('now', '-{amount} {unit}')"
        return f"DATE_SUB(NOW(), INTERVAL {amount} {unit})"

    def _prepare(self, query: str) -> str:
        if self.driver is Driver.MYSQL:
            return _to_format_style(query)
        return query

    def execute(self, query: str, params: Iterable[Any] = ()) -> Any:
        """Run a statement and return its cursor (rowcount, lastrowid)."""
        cursor = self.connection.cursor()
        cursor.execute(self._prepare(query), tuple(params))
        return cursor

    def query_one(self, query: str, params: Iterable[Any] = ()) -> Sequence[Any] | None:
        """Return the first row of a query, or None when there is none."""
        return self.execute(query, params).fetchone()

    def query_all(self, query: str, params: Iterable[Any] = ()) -> list[Sequence[Any]]:
        """Return every row of a query."""
        return list(self.execute(query, params).fetchall())

    def database_initialized(self) -> bool:
        """Whether the schema is present, judged by the ``users`` table."""
        if self.is_sqlite:
            query = "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'users'"
        else:
            query = "SHOW TABLES LIKE 'users'"
        try:
            row = self.query_one(query)
        except Exception as exc:  # any driver error means "not initialized"
            log.error("Couldn't SHOW TABLES: %s", exc)
            return False
        return row is not None