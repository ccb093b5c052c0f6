"""Declarative table schema.

A schema is built once by the caller and never modified. ``Schema.from_dict``
accepts the mapping form used in schema files:

    name: items
    columns:
      id: {type: INTEGER, primaryKey: true}
      name: {type: TEXT, unique: true, collate: nocase}
      price: {type: FLOAT, notNull: true, defaultValue: 0}
    indices:
      name_price: {columns: [name, price]}
    foreignKeys:
      - {from: owner_id, references: {owners: id}}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from litetable.errors import (
    InvalidColumnTypeError, InvalidForeignKeyDescriptionError, InvalidPrimaryKeyError,
)


# --- DataType constants ---

class DataType:
    INTEGER = "INTEGER"
    BOOLEAN = "INTEGER"
    DATE = "INTEGER"
    NUMERIC = "NUMERIC"
    TEXT = "TEXT"
    FLOAT = "REAL"
    REAL = "REAL"
    BLOB = "BLOB"

    _STORAGE = {INTEGER, NUMERIC, TEXT, REAL, BLOB}
    _NAMES = {
        "INTEGER": INTEGER, "BOOLEAN": BOOLEAN, "DATE": DATE, "NUMERIC": NUMERIC,
        "TEXT": TEXT, "FLOAT": FLOAT, "REAL": REAL, "BLOB": BLOB,
    }

    @classmethod
    def is_valid(cls, t: Any) -> bool:
        return isinstance(t, str) and t in cls._STORAGE

    @classmethod
    def resolve(cls, name: Any) -> str:
        """Map a type name or alias (``"float"``, ``"BOOLEAN"``) to its storage type."""
        if isinstance(name, str) and name.upper() in cls._NAMES:
            return cls._NAMES[name.upper()]
        raise InvalidColumnTypeError(f"Invalid sql type {name!r}")

    @classmethod
    def from_storage(cls, declared: str | None) -> str:
        """Inverse mapping for types reported by the database."""
        declared = (declared or "").upper()
        if declared in (cls.INTEGER, cls.NUMERIC, cls.TEXT, cls.REAL):
            return declared
        return cls.BLOB


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


def _as_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(value)


# --- Dataclasses ---

@dataclass(frozen=True)
class ColumnDef:
    type: str
    primary_key: bool = False
    unique: bool = False
    not_null: bool = False
    default_value: Any = None
    collate: str | None = None
    index: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", DataType.resolve(self.type))

    @classmethod
    def from_dict(cls, d: Mapping[str, Any] | str) -> ColumnDef:
        if isinstance(d, str):
            return cls(type=d)
        return cls(
            type=d.get("type"),
            primary_key=bool(_pick(d, "primary_key", "primaryKey", default=False)),
            unique=bool(d.get("unique", False)),
            not_null=bool(_pick(d, "not_null", "notNull", default=False)),
            default_value=_pick(d, "default_value", "defaultValue"),
            collate=d.get("collate"),
            index=bool(d.get("index", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.type}
        if self.primary_key:
            d["primary_key"] = True
        if self.unique:
            d["unique"] = True
        if self.not_null:
            d["not_null"] = True
        if self.default_value is not None:
            d["default_value"] = self.default_value
        if self.collate:
            d["collate"] = self.collate
        if self.index:
            d["index"] = True
        return d


@dataclass(frozen=True)
class IndexDef:
    columns: tuple[str, ...]
    unique: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", _as_tuple(self.columns))

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> IndexDef:
        return cls(columns=d["columns"], unique=bool(d.get("unique", False)))

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"columns": list(self.columns)}
        if self.unique:
            d["unique"] = True
        return d


@dataclass(frozen=True)
class ForeignKeyDef:
    from_: str | tuple[str, ...]
    references: Mapping[str, str | tuple[str, ...]]

    @property
    def from_columns(self) -> tuple[str, ...]:
        return _as_tuple(self.from_)

    @property
    def table(self) -> str:
        if len(self.references) != 1:
            raise InvalidForeignKeyDescriptionError(
                f"Invalid foreign key description: {dict(self.references)!r}"
            )
        return next(iter(self.references))

    @property
    def to_columns(self) -> tuple[str, ...]:
        return _as_tuple(self.references[self.table])

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> ForeignKeyDef:
        return cls(from_=_pick(d, "from", "from_"), references=dict(d["references"]))

    def to_dict(self) -> dict[str, Any]:
        def collapse(cols: tuple[str, ...]) -> str | list[str]:
            return cols[0] if len(cols) == 1 else list(cols)
        return {
            "from": collapse(self.from_columns),
            "references": {self.table: collapse(self.to_columns)},
        }


@dataclass(frozen=True)
class Schema:
    name: str
    columns: Mapping[str, ColumnDef]
    indices: Mapping[str, IndexDef] = field(default_factory=dict)
    foreign_keys: tuple[ForeignKeyDef, ...] = ()
    primary_key: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "foreign_keys", tuple(self.foreign_keys))
        if self.primary_key is not None:
            object.__setattr__(self, "primary_key", _as_tuple(self.primary_key))

        pk_columns = [name for name, col in self.columns.items() if col.primary_key]
        if len(pk_columns) > 1:
            raise InvalidPrimaryKeyError(
                f"Table {self.name} declares several primary key columns {pk_columns}; "
                "use primary_key for a composite key"
            )
        if pk_columns and self.primary_key:
            raise InvalidPrimaryKeyError(
                f"Table {self.name} declares both a column and a composite primary key"
            )

    @property
    def primary_key_columns(self) -> tuple[str, ...]:
        if self.primary_key:
            return self.primary_key
        return tuple(name for name, col in self.columns.items() if col.primary_key)

    def is_primary_key(self, column_name: str) -> bool:
        return column_name in self.primary_key_columns

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Schema:
        return cls(
            name=d["name"],
            columns={name: ColumnDef.from_dict(col) for name, col in d["columns"].items()},
            indices={name: IndexDef.from_dict(ix)
                     for name, ix in (d.get("indices") or {}).items()},
            foreign_keys=tuple(ForeignKeyDef.from_dict(fk)
                               for fk in _pick(d, "foreign_keys", "foreignKeys", default=None) or ()),
            primary_key=_pick(d, "primary_key", "primaryKey"),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "columns": {name: col.to_dict() for name, col in self.columns.items()},
        }
        if self.indices:
            d["indices"] = {name: ix.to_dict() for name, ix in self.indices.items()}
        if self.foreign_keys:
            d["foreign_keys"] = [fk.to_dict() for fk in self.foreign_keys]
        if self.primary_key:
            d["primary_key"] = list(self.primary_key)
        return d
