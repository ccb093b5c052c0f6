"""Fluent query builder producing SELECT/UPDATE/DELETE/COUNT statements.

Every clause method returns a new ``QueryBuilder``; an instance is never
modified after construction, so a partially built query can be shared and
extended independently:

    base = build_query(db).from_("items").find({"kind": "book"})
    cheap = base.find({"price": {"$lt": 10}}).order_by(["price"]).all()
    total = base.count()

Clause values are validated when a terminal method (``all``, ``get``,
``each``, ``stream``, ``count``, ``remove``, ``update``) builds the statement.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence

from litetable.errors import (
    InvalidExpressionSyntaxError, InvalidLimitError, InvalidOffsetError,
    InvalidOrderDirectionError, InvalidQueryShapeError,
)
from litetable.expression import parse, to_sql
from litetable.params import ParameterBinder
from litetable.statement import RunResult, Statement

if TYPE_CHECKING:
    from litetable.db import Database
    from litetable.streams import RowReadStream


ASCENDING = ("asc", "ascending", 1)
DESCENDING = ("desc", "descending", -1)


def _order_direction(value: Any) -> str:
    # bool is an int; True/False are not directions
    if isinstance(value, bool):
        raise InvalidOrderDirectionError(f"Invalid orderBy direction: {value!r}")
    if value in ASCENDING:
        return "ASC"
    if value in DESCENDING:
        return "DESC"
    raise InvalidOrderDirectionError(f"Invalid orderBy direction: {value!r}")


def _order_term(column: Any) -> str:
    if isinstance(column, str):
        return column
    if isinstance(column, Mapping):
        if len(column) != 1:
            raise InvalidOrderDirectionError(f"Invalid orderBy for column {column!r}")
        (name, direction), = column.items()
        return f"{name} {_order_direction(direction)}"
    raise InvalidOrderDirectionError(f"Invalid orderBy for column {column!r}")


@dataclass(frozen=True)
class CompiledQuery:
    """Rendered clauses of one query. Empty strings mark absent clauses."""
    columns: str
    from_: str
    where: str
    group_by: str
    order_by: str
    limit: str
    offset: str
    parameters: ParameterBinder


@dataclass(frozen=True)
class QueryBuilder:
    db: Database
    select_columns: str | tuple[str, ...] | None = None
    from_table: str | None = None
    where_filter: Mapping[str, Any] | None = None
    group_by_columns: tuple[str, ...] = ()
    order_by_columns: tuple[Any, ...] = ()
    limit_count: Any = None
    offset_count: Any = None

    # --- Clauses ---

    def select(self, columns: str | Sequence[str]) -> QueryBuilder:
        if not isinstance(columns, str):
            columns = tuple(columns)
        return replace(self, select_columns=columns)

    def from_(self, table: str) -> QueryBuilder:
        return replace(self, from_table=table)

    def find(self, filter: Mapping[str, Any]) -> QueryBuilder:
        """Add conditions. Keys merge into earlier filters, last write wins."""
        if not isinstance(filter, Mapping) or len(filter) == 0:
            raise InvalidExpressionSyntaxError(filter, "no columns specified for where clause")
        merged = dict(self.where_filter or {})
        merged.update(filter)
        return replace(self, where_filter=merged)

    def group_by(self, columns: str | Sequence[str]) -> QueryBuilder:
        if isinstance(columns, str):
            columns = [columns]
        return replace(self, group_by_columns=tuple(columns))

    def order_by(self, columns: Any) -> QueryBuilder:
        """Append ordering terms.

        Accepts a column name, a ``{column: direction}`` mapping, or a list of
        those. Direction is one of asc/ascending/1 or desc/descending/-1.
        """
        if isinstance(columns, (str, Mapping)):
            columns = [columns]
        return replace(self, order_by_columns=self.order_by_columns + tuple(columns))

    def limit(self, count: int) -> QueryBuilder:
        return replace(self, limit_count=count)

    def offset(self, count: int) -> QueryBuilder:
        return replace(self, offset_count=count)

    # --- Compilation ---

    def _compile(self) -> CompiledQuery:
        parameters = ParameterBinder()

        where = ""
        if self.where_filter:
            where = f"WHERE ({to_sql(parse(self.where_filter), parameters)})"

        columns = "*"
        if isinstance(self.select_columns, str):
            columns = self.select_columns
        elif self.select_columns:
            columns = ", ".join(self.select_columns)

        limit = ""
        if self.limit_count is not None:
            if isinstance(self.limit_count, bool) or not isinstance(self.limit_count, int) \
                    or self.limit_count <= 0:
                raise InvalidLimitError(f"Invalid limit: {self.limit_count!r}")
            limit = f"LIMIT {self.limit_count}"

        offset = ""
        if self.offset_count is not None:
            if isinstance(self.offset_count, bool) or not isinstance(self.offset_count, int) \
                    or self.offset_count < 0:
                raise InvalidOffsetError(f"Invalid offset: {self.offset_count!r}")
            if self.offset_count > 0:
                offset = f"OFFSET {self.offset_count}"

        group_by = ""
        if self.group_by_columns:
            group_by = f"GROUP BY {', '.join(self.group_by_columns)}"

        order_by = ""
        if self.order_by_columns:
            order_by = "ORDER BY " + ", ".join(_order_term(c) for c in self.order_by_columns)

        if not self.from_table:
            raise InvalidQueryShapeError("query", "no table")

        return CompiledQuery(
            columns=columns,
            from_=f"FROM {self.from_table}",
            where=where,
            group_by=group_by,
            order_by=order_by,
            limit=limit,
            offset=offset,
            parameters=parameters,
        )

    @staticmethod
    def _join(*parts: str) -> str:
        return " ".join(part for part in parts if part)

    @staticmethod
    def _reject(query: CompiledQuery, statement: str, *clauses: str) -> None:
        names = {"group_by": "groupBy", "limit": "limit", "offset": "offset", "order_by": "orderBy"}
        for clause in clauses:
            if getattr(query, clause):
                raise InvalidQueryShapeError(statement, names[clause])

    def _build_select(self) -> tuple[str, dict[str, Any]]:
        q = self._compile()
        # SQLite only accepts OFFSET after a LIMIT
        limit = q.limit or ("LIMIT -1" if q.offset else "")
        sql = self._join(f"SELECT {q.columns}", q.from_, q.where, q.group_by,
                         q.order_by, limit, q.offset)
        return sql, q.parameters.params

    def _build_count(self) -> tuple[str, dict[str, Any]]:
        q = self._compile()
        self._reject(q, "count", "limit", "offset", "order_by")
        if q.group_by:
            inner = self._join("SELECT 1", q.from_, q.where, q.group_by)
            sql = f"SELECT COUNT(*) AS count FROM ({inner})"
        else:
            sql = self._join("SELECT COUNT(*) AS count", q.from_, q.where)
        return sql, q.parameters.params

    def _build_delete(self) -> tuple[str, dict[str, Any]]:
        q = self._compile()
        self._reject(q, "remove", "group_by", "limit", "offset", "order_by")
        return self._join("DELETE", q.from_, q.where), q.parameters.params

    def _build_update(self, new_values: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
        q = self._compile()
        self._reject(q, "update", "group_by", "limit", "offset", "order_by")
        if not new_values:
            raise InvalidQueryShapeError("update", "no values")

        # SET placeholders come after the WHERE ones from the same binder
        set_columns = []
        for column_name, value in new_values.items():
            set_columns.append(f"{column_name} = {q.parameters.add_param(value)}")

        sql = self._join(f"UPDATE {self.from_table} SET {', '.join(set_columns)}", q.where)
        return sql, q.parameters.params

    # --- Terminals ---

    def all(self) -> list[dict[str, Any]]:
        sql, params = self._build_select()
        return self.db.all(sql, params)

    def get(self) -> dict[str, Any] | None:
        sql, params = self._build_select()
        return self.db.get(sql, params)

    def each(self, callback: Callable[[dict[str, Any]], Any]) -> int:
        sql, params = self._build_select()
        return self.db.each(sql, params, callback)

    def prepare_select(self) -> Statement:
        sql, params = self._build_select()
        return self.db.prepare(sql, params)

    def stream(self, prefetch: int | None = None) -> RowReadStream:
        return self.prepare_select().stream(prefetch=prefetch)

    def count(self) -> int:
        sql, params = self._build_count()
        row = self.db.get(sql, params)
        return row["count"] if row else 0

    def remove(self) -> RunResult:
        sql, params = self._build_delete()
        return self.db.run(sql, params)

    def update(self, new_values: Mapping[str, Any]) -> RunResult:
        sql, params = self._build_update(new_values)
        return self.db.run(sql, params)


def build_query(db: Database) -> QueryBuilder:
    return QueryBuilder(db)
