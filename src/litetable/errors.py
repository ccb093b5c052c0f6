"""Exception hierarchy for litetable.

Programmer errors (bad filters, bad schema declarations, illegal clause
combinations) derive from ``SqlSyntaxError`` and are raised before any SQL is
sent to the database. Failures reported by SQLite itself are wrapped in
``EngineError`` together with the statement and parameters that caused them.
"""

from __future__ import annotations

from typing import Any


class LitetableError(Exception):
    """Base class for all litetable errors."""


# --- Programmer errors ---

class SqlSyntaxError(LitetableError, ValueError):
    """Invalid input detected while building SQL. Never retried."""


class InvalidExpressionSyntaxError(SqlSyntaxError):
    def __init__(self, fragment: Any, reason: str = "") -> None:
        self.fragment = fragment
        message = f"Invalid syntax for {fragment!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidParameterTypeError(SqlSyntaxError):
    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(
            f"Invalid type {type(value).__name__} for sql parameter {value!r}"
        )


class InvalidQueryShapeError(SqlSyntaxError):
    def __init__(self, statement: str, clause: str) -> None:
        self.statement = statement
        self.clause = clause
        super().__init__(f"Invalid {statement} with {clause}")


class InvalidOrderDirectionError(SqlSyntaxError):
    pass


class InvalidLimitError(SqlSyntaxError):
    pass


class InvalidOffsetError(SqlSyntaxError):
    pass


class InvalidColumnTypeError(SqlSyntaxError):
    pass


class InvalidPrimaryKeyError(SqlSyntaxError):
    pass


class InvalidDefaultValueTypeError(SqlSyntaxError):
    pass


class InvalidForeignKeyDescriptionError(SqlSyntaxError):
    pass


class UnknownIndexColumnError(SqlSyntaxError):
    pass


class UnknownColumnError(SqlSyntaxError):
    pass


class NoUniqueColumnError(SqlSyntaxError):
    pass


class RowShapeMismatchError(SqlSyntaxError):
    pass


# --- Schema reconciliation ---

class SchemaError(LitetableError):
    """Reconciliation refused to touch the table."""


class SchemaMismatchError(SchemaError):
    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"Table {table} already exists and doesn't match the declared schema")


class ForeignKeysMustBeDisabledError(SchemaError):
    def __init__(self) -> None:
        super().__init__("Foreign keys must be disabled when using create_or_update_table")


# --- Engine ---

class EngineError(LitetableError):
    """An error reported by SQLite, with the failing statement attached."""

    def __init__(self, message: str, sql: str, params: Any = None) -> None:
        self.sql = sql
        self.params = params
        if params:
            super().__init__(f"{message}, when running {sql} with {params!r}")
        else:
            super().__init__(f"{message}, when running {sql}")

    @property
    def is_unique_violation(self) -> bool:
        return "UNIQUE constraint failed" in str(self)
