"""Raw SQL queries with default parameters."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from litetable.statement import Statement

if TYPE_CHECKING:
    from litetable.db import Database
    from litetable.streams import RowReadStream


class RawQuery:
    """SQL text plus parameters, re-runnable with replacement parameters."""

    def __init__(self, db: Database, sql: str, params: Any = None):
        self.db = db
        self.sql = sql
        self.params = params

    def _params(self, params: Any) -> Any:
        return self.params if params is None else params

    def all(self, params: Any = None) -> list[dict[str, Any]]:
        return self.db.all(self.sql, self._params(params))

    def get(self, params: Any = None) -> dict[str, Any] | None:
        return self.db.get(self.sql, self._params(params))

    def each(self, callback: Callable[[dict[str, Any]], Any], params: Any = None) -> int:
        return self.db.each(self.sql, self._params(params), callback)

    def prepare(self, params: Any = None) -> Statement:
        return self.db.prepare(self.sql, self._params(params))

    def stream(self, params: Any = None, prefetch: int | None = None) -> RowReadStream:
        return self.prepare(params).stream(prefetch=prefetch)


def query(db: Database, sql: str, params: Any = None) -> RawQuery:
    return RawQuery(db, sql, params)
