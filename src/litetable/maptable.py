"""String key/value table stored in SQLite."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from litetable.reconciler import TableSyncResult
from litetable.schema import ColumnDef, DataType, Schema
from litetable.table import Table

if TYPE_CHECKING:
    from litetable.db import Database


def map_schema(name: str) -> Schema:
    return Schema(
        name=name,
        columns={
            "id": ColumnDef(type=DataType.INTEGER, primary_key=True),
            "key": ColumnDef(type=DataType.TEXT, unique=True),
            "value": ColumnDef(type=DataType.TEXT),
        },
    )


class MapTable:
    """A table of unique text keys mapped to text values."""

    def __init__(self, db: Database, name: str):
        self.db = db
        self.name = name
        self.table = Table(db, map_schema(name))

    def create(self) -> TableSyncResult:
        return self.table.create_or_update_table()

    def create_if_not_exists(self) -> TableSyncResult:
        return self.table.create_table_if_not_exists()

    def get(self, key: str) -> str | None:
        row = self.db.get(f"SELECT value FROM {self.name} WHERE key = ?", (key,))
        return row["value"] if row else None

    def set(self, key: str, value: str | None) -> None:
        # Keys are bound directly; they never pass through the filter syntax.
        self.db.run(
            f"INSERT INTO {self.name} (key, value) VALUES (?, ?) "
            "ON CONFLICT (key) DO UPDATE SET value = excluded.value",
            (key, value),
        )

    def delete(self, key: str) -> int:
        """Remove key. Returns the number of rows deleted."""
        return self.db.run(f"DELETE FROM {self.name} WHERE key = ?", (key,)).changes

    def items(self) -> Iterator[tuple[str, str | None]]:
        for row in self.table.find().select(["key", "value"]).order_by("key").all():
            yield row["key"], row["value"]

    def __contains__(self, key: str) -> bool:
        return self.db.get(f"SELECT 1 AS found FROM {self.name} WHERE key = ?", (key,)) is not None
