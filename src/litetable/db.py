"""SQLite connection adapter.

All SQL issued by litetable goes through a ``Database``. It exposes the small
executor contract the query builder and the schema reconciler rely on
(``run``/``get``/``all``/``each``/``exec``/``prepare``) and wraps every
driver failure in ``EngineError``.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from litetable.config import LitetableConfig
from litetable.errors import EngineError
from litetable.statement import RunResult, Statement, engine_errors

logger = logging.getLogger(__name__)


def _dict_factory(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    return {col[0]: row[i] for i, col in enumerate(cursor.description)}


class Database:
    """SQLite database connection in autocommit mode."""

    def __init__(self, path: str | None = None, config: LitetableConfig | None = None,
                 autoopen: bool = True):
        self.config = config or LitetableConfig(database=path or ":memory:")
        self.path = path or self.config.database
        self._conn: sqlite3.Connection | None = None
        if autoopen:
            self.open()

    def open(self) -> Database:
        if self._conn is not None:
            return self
        try:
            self._conn = sqlite3.connect(self.path, isolation_level=None)
        except sqlite3.Error as e:
            raise EngineError(str(e), f"open {self.path}") from e
        self._conn.row_factory = _dict_factory
        self._conn.execute(f"PRAGMA busy_timeout={int(self.config.busy_timeout)}")
        if self.config.journal_mode:
            self._conn.execute(f"PRAGMA journal_mode={self.config.journal_mode}")
        if self.config.foreign_keys:
            self._conn.execute("PRAGMA foreign_keys=ON")
        logger.debug("Opened database %s", self.path)
        return self

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise EngineError("Database is not open", f"open {self.path}")
        return self._conn

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> Database:
        return self.open()

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # --- Executor contract ---

    def _execute(self, sql: str, params: Any = None) -> sqlite3.Cursor:
        logger.debug("%s %r", sql, params)
        with engine_errors(sql, params):
            return self.connection.execute(sql, params if params is not None else ())

    def run(self, sql: str, params: Any = None) -> RunResult:
        """Run a statement that returns no rows."""
        cursor = self._execute(sql, params)
        return RunResult(cursor.lastrowid, cursor.rowcount)

    def get(self, sql: str, params: Any = None) -> dict[str, Any] | None:
        """Return the first result row, or None."""
        cursor = self._execute(sql, params)
        with engine_errors(sql, params):
            return cursor.fetchone()

    def all(self, sql: str, params: Any = None) -> list[dict[str, Any]]:
        cursor = self._execute(sql, params)
        with engine_errors(sql, params):
            return cursor.fetchall()

    def each(self, sql: str, params: Any,
             callback: Callable[[dict[str, Any]], Any]) -> int:
        """Invoke callback for every row. Returns the row count."""
        cursor = self._execute(sql, params)
        count = 0
        with engine_errors(sql, params):
            for row in cursor:
                callback(row)
                count += 1
        return count

    def exec(self, script: str) -> None:
        """Execute several statements separated by semicolons."""
        logger.debug("%s", script)
        with engine_errors(script):
            self.connection.executescript(script)

    def prepare(self, sql: str, params: Any = None) -> Statement:
        return Statement(self, sql, params)

    # --- Transactions ---

    @property
    def in_transaction(self) -> bool:
        return self.connection.in_transaction

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Run the enclosed statements atomically.

        Nested use joins the outer transaction.
        """
        if self.in_transaction:
            yield self
            return
        self.run("BEGIN TRANSACTION")
        try:
            yield self
        except BaseException:
            if self.in_transaction:
                self.run("ROLLBACK")
            raise
        self.run("COMMIT")

    # --- Pragmas ---

    def pragma(self, name: str) -> Any:
        row = self.get(f"PRAGMA {name}")
        if row is None:
            return None
        return next(iter(row.values()))

    def set_pragma(self, name: str, value: Any) -> None:
        self.run(f"PRAGMA {name} = {value}")

    def enable_foreign_keys(self, enable: bool = True) -> None:
        self.set_pragma("foreign_keys", "ON" if enable else "OFF")

    def is_foreign_keys_enabled(self) -> bool:
        return bool(self.pragma("foreign_keys"))
