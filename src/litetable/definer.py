"""Render CREATE TABLE / CREATE INDEX statements from a Schema."""

from __future__ import annotations

from typing import Any

from litetable.errors import InvalidDefaultValueTypeError, UnknownIndexColumnError
from litetable.schema import ColumnDef, IndexDef, Schema


def quote_text(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def render_default(column_name: str, value: Any) -> str:
    """Render a DEFAULT literal: strings quoted, numbers bare."""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return quote_text(value)
    raise InvalidDefaultValueTypeError(
        f"Invalid type {type(value).__name__} for default value for column {column_name}"
    )


def render_column(name: str, column: ColumnDef) -> str:
    parts = [name, column.type]
    if column.primary_key:
        parts.append("PRIMARY KEY")
    else:
        # PRIMARY KEY already implies both
        if column.unique:
            parts.append("UNIQUE")
        if column.not_null:
            parts.append("NOT NULL")
    if column.default_value is not None:
        parts.append(f"DEFAULT {render_default(name, column.default_value)}")
    if column.collate:
        parts.append(f"COLLATE {column.collate}")
    return " ".join(parts)


def index_name(table: str, name: str) -> str:
    return f"ix_{table}_{name}"


def collect_indices(schema: Schema) -> dict[str, tuple[IndexDef, tuple[str, ...]]]:
    """All indices to create, with the rendered expression for each column.

    Columns flagged ``index`` become single-column non-unique indices keyed by
    the column name; SQLite cannot declare them inline.
    """
    indices: dict[str, tuple[IndexDef, tuple[str, ...]]] = {}
    for name, ix in schema.indices.items():
        for column_name in ix.columns:
            if column_name not in schema.columns:
                raise UnknownIndexColumnError(
                    f"Unknown field {column_name} for index {name}"
                )
        indices[name] = (ix, ix.columns)

    for name, column in schema.columns.items():
        if column.index and name not in indices:
            expr = f"{name} COLLATE {column.collate}" if column.collate else name
            indices[name] = (IndexDef(columns=(name,)), (expr,))
    return indices


def render_create_table(schema: Schema) -> str:
    lines = [render_column(name, col) for name, col in schema.columns.items()]

    for fk in schema.foreign_keys:
        lines.append(
            f"FOREIGN KEY({', '.join(fk.from_columns)}) "
            f"REFERENCES {fk.table}({', '.join(fk.to_columns)})"
        )

    if schema.primary_key:
        lines.append(f"PRIMARY KEY ({', '.join(schema.primary_key)})")

    body = ",\n    ".join(lines)
    return f"CREATE TABLE {schema.name} (\n    {body}\n)"


def render_create_indices(schema: Schema) -> list[str]:
    statements = []
    for name, (ix, exprs) in collect_indices(schema).items():
        unique = "UNIQUE " if ix.unique else ""
        statements.append(
            f"CREATE {unique}INDEX IF NOT EXISTS {index_name(schema.name, name)} "
            f"ON {schema.name} ({', '.join(exprs)})"
        )
    return statements


def render_create_statements(schema: Schema) -> list[str]:
    """CREATE TABLE followed by one CREATE INDEX per index, in order."""
    return [render_create_table(schema)] + render_create_indices(schema)
