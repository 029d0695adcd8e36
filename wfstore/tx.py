"""Running blocks of work inside a database transaction."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

T = TypeVar("T")


def _begin(connection: Any) -> None:
    """Open a transaction on a DB-API connection."""
    begin = getattr(connection, "begin", None)
    if callable(begin):
        begin()
        return
    if getattr(connection, "in_transaction", False):
        return
    connection.cursor().execute("BEGIN")


@contextmanager
def transaction(connection: Any) -> Iterator[Any]:
    """Yield the connection inside a transaction.

    The transaction is committed when the block finishes and rolled back
    when it raises. An error raised by the rollback itself replaces the
    original one, which stays attached as its context.
    """
    _begin(connection)
    try:
        yield connection
    except BaseException:
        connection.rollback()
        raise
    connection.commit()


def run_transaction(connection: Any, work: Callable[[Any], T]) -> T:
    """Call ``work(connection)`` inside a transaction and return its result."""
    with transaction(connection) as conn:
        return work(conn)