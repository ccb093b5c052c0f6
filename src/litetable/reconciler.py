"""Reconcile a declared Schema with the table present in the database.

A table is in one of three states: absent, present and equal to the declared
schema, or present and divergent. ``create_table_if_not_exists`` refuses to
touch a divergent table; ``create_or_update_table`` migrates it by renaming
the old table, creating the new one, copying the shared columns and dropping
the old copy, all inside one transaction.

Equality covers column names, storage types, effective NOT NULL, default
values and foreign keys. Index differences alone never trigger a migration.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from litetable.definer import quote_text, render_create_statements
from litetable.errors import ForeignKeysMustBeDisabledError, SchemaMismatchError
from litetable.schema import ColumnDef, DataType, ForeignKeyDef, IndexDef, Schema

if TYPE_CHECKING:
    from litetable.db import Database

logger = logging.getLogger(__name__)

NO_DEFAULT = ("none",)


@dataclass(frozen=True)
class TableSyncResult:
    was_created: bool
    was_updated: bool = False


@dataclass(frozen=True)
class MigrationStep:
    description: str
    sql: str


# --- Comparison ---

def parse_default(raw: str | None) -> Any:
    """Parse a default value as reported by PRAGMA table_info."""
    if raw is None:
        return None
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ("'", '"'):
        quote = raw[0]
        return raw[1:-1].replace(quote * 2, quote)
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        # An expression such as CURRENT_TIMESTAMP
        return raw


def default_key(value: Any) -> tuple:
    if value is None:
        return NO_DEFAULT
    if isinstance(value, (bool, int, float)):
        return ("number", float(value))
    if isinstance(value, str):
        return ("text", quote_text(value))
    return ("other", repr(value))


def is_not_null(schema: Schema, column_name: str) -> bool:
    return schema.columns[column_name].not_null or schema.is_primary_key(column_name)


def schema_matches(declared: Schema, actual: Schema) -> bool:
    """True when the database table needs no migration to match declared."""
    if set(declared.columns) != set(actual.columns):
        return False

    for name, column in declared.columns.items():
        old = actual.columns[name]
        if column.type != old.type:
            return False
        if is_not_null(declared, name) != is_not_null(actual, name):
            return False
        if default_key(column.default_value) != default_key(old.default_value):
            return False

    old_foreign_keys = actual.foreign_keys
    foreign_keys = declared.foreign_keys
    if len(old_foreign_keys) != len(foreign_keys):
        return False
    for old_fk in old_foreign_keys:
        new_fk = next((fk for fk in foreign_keys if fk.from_columns == old_fk.from_columns), None)
        if new_fk is None:
            return False
        if new_fk.table.lower() != old_fk.table.lower():
            return False
        if new_fk.to_columns != old_fk.to_columns:
            return False

    return True


# --- Migration ---

def backup_table_name(table: str) -> str:
    return f"backup_{table}_{int(time.time() * 1000)}"


def plan_migration(schema: Schema, old_schema: Schema, backup_name: str,
                   index_names: list[str] | None = None) -> list[MigrationStep]:
    """Ordered statements that replace old_schema's table with schema.

    ``index_names`` are the explicitly created indices of the old table; they
    follow the table on rename and must be dropped so the new table can reuse
    their names.
    """
    name = schema.name
    create_statements = render_create_statements(schema)

    steps = [MigrationStep(f"rename {name} to {backup_name}",
                           f"ALTER TABLE {name} RENAME TO {backup_name}")]
    for index in index_names or []:
        steps.append(MigrationStep(f"drop index {index}", f"DROP INDEX {index}"))
    for sql in create_statements:
        steps.append(MigrationStep(sql.split("(")[0].strip().lower(), sql))

    shared = [column for column in schema.columns if column in old_schema.columns]
    if shared:
        column_list = ", ".join(shared)
        steps.append(MigrationStep(
            f"copy {column_list}",
            f"INSERT INTO {name} ({column_list}) SELECT {column_list} FROM {backup_name}",
        ))

    steps.append(MigrationStep(f"drop {backup_name}", f"DROP TABLE {backup_name}"))
    return steps


class SchemaReconciler:
    """Brings one table in the database in line with a declared schema."""

    def __init__(self, db: Database, schema: Schema):
        self.db = db
        self.schema = schema

    def table_exists(self) -> bool:
        row = self.db.get(
            "SELECT count(*) AS count FROM sqlite_master "
            "WHERE type='table' AND name=? COLLATE NOCASE",
            (self.schema.name,),
        )
        return bool(row and row["count"] > 0)

    def get_schema_from_database(self) -> Schema:
        """Rebuild a Schema from the table's columns, foreign keys and indices."""
        name = self.schema.name
        table_info = self.db.all(f"PRAGMA table_info({name})")

        pk_columns = [row["name"] for row in sorted(table_info, key=lambda r: r["pk"]) if row["pk"]]
        single_pk = pk_columns[0] if len(pk_columns) == 1 else None
        unique_columns = self._unique_columns()

        columns: dict[str, ColumnDef] = {}
        for row in table_info:
            columns[row["name"]] = ColumnDef(
                type=DataType.from_storage(row["type"]),
                primary_key=row["name"] == single_pk,
                unique=row["name"] in unique_columns,
                not_null=bool(row["notnull"]),
                default_value=parse_default(row["dflt_value"]),
            )

        return Schema(
            name=name,
            columns=columns,
            indices=self._explicit_indices(),
            foreign_keys=self._foreign_keys(),
            primary_key=tuple(pk_columns) if len(pk_columns) > 1 else None,
        )

    def _foreign_keys(self) -> tuple[ForeignKeyDef, ...]:
        grouped: dict[int, list[dict[str, Any]]] = {}
        for row in self.db.all(f"PRAGMA foreign_key_list({self.schema.name})"):
            grouped.setdefault(row["id"], []).append(row)

        foreign_keys = []
        for rows in grouped.values():
            rows.sort(key=lambda r: r["seq"])
            from_columns = tuple(r["from"] for r in rows)
            to_columns = tuple(r["to"] for r in rows if r["to"] is not None)
            foreign_keys.append(ForeignKeyDef(
                from_=from_columns[0] if len(from_columns) == 1 else from_columns,
                references={rows[0]["table"]: to_columns[0] if len(to_columns) == 1 else to_columns},
            ))
        return tuple(foreign_keys)

    def _index_columns(self, index: str) -> tuple[str, ...]:
        rows = self.db.all(f"PRAGMA index_info({index})")
        return tuple(r["name"] for r in sorted(rows, key=lambda r: r["seqno"]))

    def _unique_columns(self) -> set[str]:
        unique = set()
        for row in self.db.all(f"PRAGMA index_list({self.schema.name})"):
            if row["origin"] == "u" and row["unique"]:
                columns = self._index_columns(row["name"])
                if len(columns) == 1:
                    unique.add(columns[0])
        return unique

    def _explicit_indices(self) -> dict[str, IndexDef]:
        prefix = f"ix_{self.schema.name}_"
        indices = {}
        for row in self.db.all(f"PRAGMA index_list({self.schema.name})"):
            if row["origin"] == "c" and row["name"].startswith(prefix):
                indices[row["name"][len(prefix):]] = IndexDef(
                    columns=self._index_columns(row["name"]),
                    unique=bool(row["unique"]),
                )
        return indices

    def _explicit_index_names(self) -> list[str]:
        rows = self.db.all(
            "SELECT name FROM sqlite_master "
            "WHERE type='index' AND tbl_name=? COLLATE NOCASE AND sql IS NOT NULL",
            (self.schema.name,),
        )
        return [row["name"] for row in rows]

    def schema_matches_database(self) -> bool:
        return schema_matches(self.schema, self.get_schema_from_database())

    def create_table(self) -> None:
        statements = render_create_statements(self.schema)
        with self.db.transaction():
            for sql in statements:
                self.db.run(sql)
        logger.info("Created table %s", self.schema.name)

    def create_table_if_not_exists(self) -> TableSyncResult:
        if self.table_exists():
            if not self.schema_matches_database():
                raise SchemaMismatchError(self.schema.name)
            return TableSyncResult(was_created=False)

        self.create_table()
        return TableSyncResult(was_created=True)

    def create_or_update_table(self) -> TableSyncResult:
        if self.db.is_foreign_keys_enabled():
            raise ForeignKeysMustBeDisabledError()

        if not self.table_exists():
            self.create_table()
            return TableSyncResult(was_created=True)

        old_schema = self.get_schema_from_database()
        if schema_matches(self.schema, old_schema):
            return TableSyncResult(was_created=False, was_updated=False)

        self.migrate(old_schema)
        return TableSyncResult(was_created=False, was_updated=True)

    def migrate(self, old_schema: Schema) -> None:
        """Replace the table, keeping the data of the columns both schemas share."""
        backup_name = backup_table_name(self.schema.name)
        steps = plan_migration(self.schema, old_schema, backup_name,
                               self._explicit_index_names())
        shared = [c for c in self.schema.columns if c in old_schema.columns]
        logger.info("Migrating table %s via %s, copying %s", self.schema.name, backup_name,
                    ", ".join(shared) or "no columns")

        # Keep references to this table in other tables pointing at the new table
        legacy_alter_table = self.db.pragma("legacy_alter_table")
        self.db.set_pragma("legacy_alter_table", "ON")
        try:
            with self.db.transaction():
                for step in steps:
                    logger.debug("Migration step: %s", step.description)
                    self.db.run(step.sql)
        finally:
            self.db.set_pragma("legacy_alter_table", "ON" if legacy_alter_table else "OFF")
        logger.info("Migrated table %s", self.schema.name)
