"""Row-level operations on one declared table."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from litetable.builder import QueryBuilder
from litetable.errors import EngineError, NoUniqueColumnError, UnknownColumnError
from litetable.params import to_sql_value
from litetable.reconciler import SchemaReconciler, TableSyncResult
from litetable.schema import Schema
from litetable.statement import RunResult

if TYPE_CHECKING:
    from litetable.db import Database
    from litetable.streams import RowExtendStream, RowWriteStream

logger = logging.getLogger(__name__)


class Table:
    """A table described by a Schema, bound to a Database."""

    def __init__(self, db: Database, schema: Schema | Mapping[str, Any]):
        if not isinstance(schema, Schema):
            schema = Schema.from_dict(schema)
        self.db = db
        self.schema = schema
        self._reconciler = SchemaReconciler(db, schema)

    @property
    def name(self) -> str:
        return self.schema.name

    # --- Schema ---

    def create_table(self) -> None:
        """Create the table and its indices. Fails if the table exists."""
        self._reconciler.create_table()

    def create_table_if_not_exists(self) -> TableSyncResult:
        return self._reconciler.create_table_if_not_exists()

    def create_or_update_table(self) -> TableSyncResult:
        return self._reconciler.create_or_update_table()

    def table_exists(self) -> bool:
        return self._reconciler.table_exists()

    def get_schema_from_database(self) -> Schema:
        return self._reconciler.get_schema_from_database()

    def schema_matches_database(self) -> bool:
        return self._reconciler.schema_matches_database()

    # --- Rows ---

    def insert(self, row: Mapping[str, Any]) -> RunResult:
        if not row:
            return self.db.run(f"INSERT INTO {self.name} DEFAULT VALUES")
        columns = ", ".join(row)
        values = ", ".join(f"${name}" for name in row)
        sql = f"INSERT INTO {self.name} ({columns}) VALUES ({values})"
        return self.db.run(sql, {name: to_sql_value(value) for name, value in row.items()})

    def find(self, filter: Mapping[str, Any] | None = None) -> QueryBuilder:
        query = QueryBuilder(self.db).from_(self.name)
        if filter is not None:
            query = query.find(filter)
        return query

    def insert_update_unique(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """Insert row, or update the stored row sharing its unique key.

        Returns the row as stored afterwards. If another writer inserts the
        same key between the lookup and the insert, the update path is
        retried once.
        """
        unique_columns = self._extract_unique_columns(row)

        def update_old_row(old_row: dict[str, Any] | None) -> dict[str, Any]:
            if old_row is None:
                result = self.insert(row)
                new_row = dict(row)
                primary_key = self._extract_primary_key()
                if primary_key and primary_key not in new_row:
                    new_row[primary_key] = result.last_insert_id
                return new_row

            primary_key = self._extract_primary_key()
            if primary_key is not None:
                self.find({primary_key: old_row[primary_key]}).update(row)
            else:
                self.find(unique_columns).update(row)
            return {**old_row, **row}

        try:
            return update_old_row(self.find(unique_columns).get())
        except EngineError as e:
            if not e.is_unique_violation:
                raise
            logger.warning("Row %r inserted concurrently into %s, updating instead",
                           unique_columns, self.name)
            old_row = self.find(unique_columns).get()
            if old_row is None:
                raise
            return update_old_row(old_row)

    def update_unique(self, row: Mapping[str, Any]) -> RunResult:
        return self.find(self._extract_unique_columns(row)).update(row)

    def _extract_unique_columns(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """The lookup key for row.

        The primary key column if the row carries it, otherwise the first
        column in schema declaration order that is declared unique and
        present in the row.
        """
        for column_name in row:
            if column_name not in self.schema.columns:
                raise UnknownColumnError(f"Column {column_name} is not part of schema {self.name}")

        primary_key = self._extract_primary_key()
        if primary_key is not None and primary_key in row:
            return {primary_key: row[primary_key]}

        for column_name, column in self.schema.columns.items():
            if column.unique and column_name in row:
                return {column_name: row[column_name]}

        raise NoUniqueColumnError(f"No unique columns for identifying the row in {self.name}")

    def _extract_primary_key(self) -> str | None:
        """The single-column primary key, or None (composite keys included)."""
        for column_name, column in self.schema.columns.items():
            if column.primary_key:
                return column_name
        return None

    # --- Streams ---

    def create_write_stream(self, insert_or_replace: bool = False,
                            batch_size: int | None = None) -> RowWriteStream:
        from litetable.streams import RowWriteStream
        if batch_size is None:
            batch_size = self.db.config.write_batch_size
        return RowWriteStream(self.db, self.name, insert_or_replace=insert_or_replace,
                              batch_size=batch_size)

    def create_extend_stream(self) -> RowExtendStream:
        from litetable.streams import RowExtendStream
        return RowExtendStream(self)
