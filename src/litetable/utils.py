"""Helpers for the litetable command line."""

from __future__ import annotations

import json
from typing import Any

import yaml

from litetable.schema import Schema


def load_schema_file(path: str) -> list[Schema]:
    """Read the ``tables:`` list of a YAML schema file.

    A file holding a single declaration (a mapping with ``name`` and
    ``columns``) is accepted too.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    if "tables" in data:
        declarations = data["tables"] or []
    elif "name" in data and "columns" in data:
        declarations = [data]
    else:
        raise ValueError(f"{path}: no tables declared")
    return [Schema.from_dict(d) for d in declarations]


def parse_where(text: str | None) -> dict[str, Any] | None:
    """Parse a JSON filter given on the command line."""
    if not text:
        return None
    where = json.loads(text)
    if not isinstance(where, dict):
        raise ValueError(f"filter must be a JSON object, got {text}")
    return where


def parse_order_by(text: str) -> str | dict[str, str]:
    """Parse ``column`` or ``column:asc|desc``."""
    column, sep, direction = text.partition(":")
    if not sep:
        return column
    return {column: direction.lower()}


def parse_columns(text: str | None) -> list[str] | None:
    if not text:
        return None
    return [c.strip() for c in text.split(",") if c.strip()]


def format_row(row: dict[str, Any]) -> str:
    """One JSON line per row; bytes are shown as hex."""
    return json.dumps(row, default=lambda v: v.hex() if isinstance(v, bytes) else str(v))
