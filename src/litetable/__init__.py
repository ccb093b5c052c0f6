"""litetable - declarative SQLite tables with a Mongo-style query layer."""

__version__ = "0.3.0"

from litetable.builder import QueryBuilder, build_query
from litetable.config import LitetableConfig
from litetable.db import Database
from litetable.errors import (
    EngineError, LitetableError, SchemaError, SchemaMismatchError, SqlSyntaxError,
)
from litetable.maptable import MapTable
from litetable.query import RawQuery, query
from litetable.reconciler import TableSyncResult
from litetable.schema import ColumnDef, DataType, ForeignKeyDef, IndexDef, Schema
from litetable.statement import RunResult, Statement
from litetable.streams import RowExtendStream, RowReadStream, RowWriteStream
from litetable.table import Table

__all__ = [
    "ColumnDef", "DataType", "Database", "EngineError", "ForeignKeyDef", "IndexDef",
    "LitetableConfig", "LitetableError", "MapTable", "QueryBuilder", "RawQuery",
    "RowExtendStream", "RowReadStream", "RowWriteStream", "RunResult", "Schema",
    "SchemaError", "SchemaMismatchError", "SqlSyntaxError", "Statement", "Table",
    "TableSyncResult", "__version__", "build_query", "query",
]
