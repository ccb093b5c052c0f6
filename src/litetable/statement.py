"""Prepared statement handle over a sqlite3 cursor."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterator

from litetable.errors import EngineError

if TYPE_CHECKING:
    from litetable.db import Database
    from litetable.streams import RowReadStream

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunResult:
    """Outcome of a data-modifying statement."""
    last_insert_id: int | None
    changes: int


@contextmanager
def engine_errors(sql: str, params: Any = None) -> Iterator[None]:
    """Re-raise sqlite3 errors as EngineError with the statement attached."""
    try:
        yield
    except sqlite3.Error as e:
        raise EngineError(str(e), sql, params) from e


class Statement:
    """A statement bound to one SQL text.

    The statement is executed lazily on the first fetch. ``finalize`` releases
    the underlying cursor and is safe to call more than once.
    """

    def __init__(self, db: Database, sql: str, params: Any = None) -> None:
        self._db = db
        self.sql = sql
        self.params = params
        self._cursor: sqlite3.Cursor | None = None
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def _check_open(self) -> None:
        if self._finalized:
            raise EngineError("Statement is finalized", self.sql, self.params)

    def _ensure_executed(self) -> sqlite3.Cursor:
        self._check_open()
        if self._cursor is None:
            self.bind(self.params)
        assert self._cursor is not None
        return self._cursor

    def bind(self, params: Any = None) -> Statement:
        """(Re-)execute the statement with new parameters, resetting the cursor."""
        self._check_open()
        self.params = params
        if self._cursor is None:
            self._cursor = self._db.connection.cursor()
        logger.debug("%s %r", self.sql, params)
        with engine_errors(self.sql, params):
            self._cursor.execute(self.sql, params if params is not None else ())
        return self

    def get(self) -> dict[str, Any] | None:
        cursor = self._ensure_executed()
        with engine_errors(self.sql, self.params):
            return cursor.fetchone()

    def get_multiple(self, count: int) -> list[dict[str, Any]]:
        cursor = self._ensure_executed()
        with engine_errors(self.sql, self.params):
            return cursor.fetchmany(count)

    def all(self) -> list[dict[str, Any]]:
        cursor = self._ensure_executed()
        with engine_errors(self.sql, self.params):
            return cursor.fetchall()

    def each(self, callback: Callable[[dict[str, Any]], Any]) -> int:
        cursor = self._ensure_executed()
        count = 0
        with engine_errors(self.sql, self.params):
            for row in cursor:
                callback(row)
                count += 1
        return count

    def run(self, params: Any = None) -> RunResult:
        """Execute a data-modifying statement once with the given parameters."""
        self.bind(params)
        assert self._cursor is not None
        return RunResult(self._cursor.lastrowid, self._cursor.rowcount)

    def stream(self, prefetch: int | None = None,
               finalize_statement: bool = True) -> RowReadStream:
        from litetable.streams import RowReadStream
        if prefetch is None:
            prefetch = self._db.config.stream_prefetch
        return RowReadStream(self, prefetch=prefetch, finalize_statement=finalize_statement)

    def finalize(self) -> None:
        if self._finalized:
            return
        self._finalized = True
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None

    def __enter__(self) -> Statement:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.finalize()
