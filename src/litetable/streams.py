"""Row streams: chunked reads, batched writes and row lookups.

    with table.find({"kind": "book"}).stream(prefetch=100) as rows:
        for row in rows:
            ...

    with table.create_write_stream() as writer:
        writer.write_all(rows)

    for row in table.create_extend_stream()(partial_rows):
        ...
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping

from litetable.config import DEFAULT_STREAM_PREFETCH, DEFAULT_WRITE_BATCH_SIZE
from litetable.errors import RowShapeMismatchError
from litetable.params import to_sql_value

if TYPE_CHECKING:
    from litetable.db import Database
    from litetable.statement import Statement
    from litetable.table import Table

logger = logging.getLogger(__name__)


class RowReadStream:
    """Iterator over a prepared SELECT, fetching ``prefetch`` rows at a time.

    The stream closes itself at the end of the data or on a fetch error;
    ``close()`` cancels it early. Closing finalizes the statement when
    ``finalize_statement`` is set.
    """

    def __init__(self, statement: Statement, prefetch: int = DEFAULT_STREAM_PREFETCH,
                 finalize_statement: bool = True):
        if prefetch <= 0:
            raise ValueError(f"Invalid prefetch size: {prefetch}")
        self._statement = statement
        self.prefetch = prefetch
        self.finalize_statement = finalize_statement
        self._rows: deque[dict[str, Any]] = deque()
        self._end_of_data = False
        self._closed = False
        self.total_rows = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _fetch_chunk(self) -> None:
        try:
            rows = self._statement.get_multiple(self.prefetch)
        except Exception:
            self.close()
            raise
        self._rows.extend(rows)
        if len(rows) < self.prefetch:
            self._end_of_data = True

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return self

    def __next__(self) -> dict[str, Any]:
        if not self._rows and not self._end_of_data and not self._closed:
            self._fetch_chunk()
        if not self._rows:
            self.close()
            raise StopIteration
        self.total_rows += 1
        return self._rows.popleft()

    def read(self, count: int) -> list[dict[str, Any]]:
        """Return up to count rows; an empty list at the end."""
        rows: list[dict[str, Any]] = []
        if count <= 0:
            return rows
        for row in self:
            rows.append(row)
            if len(rows) >= count:
                break
        return rows

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._rows.clear()
        if self.finalize_statement:
            self._statement.finalize()

    def __enter__(self) -> RowReadStream:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class RowWriteStream:
    """Buffered INSERT of rows sharing one column set.

    Each batch of ``batch_size`` rows is written in a single transaction. The
    INSERT statement is prepared from the first row's columns.
    """

    def __init__(self, db: Database, table_name: str, insert_or_replace: bool = False,
                 batch_size: int = DEFAULT_WRITE_BATCH_SIZE):
        if batch_size <= 0:
            raise ValueError(f"Invalid batch size: {batch_size}")
        self.db = db
        self.table_name = table_name
        self.insert_or_replace = insert_or_replace
        self.batch_size = batch_size
        self.rows_written = 0
        self._columns: tuple[str, ...] | None = None
        self._statement: Statement | None = None
        self._buffer: list[Mapping[str, Any]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _create_insert_statement(self, row: Mapping[str, Any]) -> Statement:
        columns = tuple(row)
        if not columns:
            raise RowShapeMismatchError("Cannot write a row without columns")
        self._columns = columns
        verb = "INSERT OR REPLACE" if self.insert_or_replace else "INSERT"
        values = ", ".join(f"${c}" for c in columns)
        sql = f"{verb} INTO {self.table_name} ({', '.join(columns)}) VALUES ({values})"
        return self.db.prepare(sql)

    def _params_from_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        assert self._columns is not None
        if set(row) != set(self._columns):
            raise RowShapeMismatchError(
                f"Row columns {sorted(row)} don't match {list(self._columns)}"
            )
        return {c: to_sql_value(row[c]) for c in self._columns}

    def write(self, row: Mapping[str, Any]) -> None:
        if self._closed:
            raise ValueError("write to closed stream")
        if self._statement is None:
            self._statement = self._create_insert_statement(row)
        self._buffer.append(self._params_from_row(row))
        if len(self._buffer) >= self.batch_size:
            self.flush()

    def write_all(self, rows: Iterable[Mapping[str, Any]]) -> int:
        count = 0
        for row in rows:
            self.write(row)
            count += 1
        return count

    def flush(self) -> None:
        """Write buffered rows in one transaction."""
        if not self._buffer:
            return
        assert self._statement is not None
        batch, self._buffer = self._buffer, []
        with self.db.transaction():
            for params in batch:
                self._statement.run(params)
        self.rows_written += len(batch)
        logger.debug("Wrote %d rows to %s", len(batch), self.table_name)

    def close(self) -> None:
        if self._closed:
            return
        try:
            self.flush()
        finally:
            self._closed = True
            if self._statement is not None:
                self._statement.finalize()

    def abort(self) -> None:
        """Drop buffered rows and release the statement."""
        self._buffer = []
        self._closed = True
        if self._statement is not None:
            self._statement.finalize()

    def __enter__(self) -> RowWriteStream:
        return self

    def __exit__(self, exc_type: Any, *exc: Any) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()


class RowExtendStream:
    """Completes partial rows with the stored row sharing their unique key.

    Incoming values win over stored ones; rows with no stored match pass
    through unchanged.
    """

    def __init__(self, table: Table):
        self.table = table

    def transform(self, row: Mapping[str, Any]) -> dict[str, Any]:
        unique_columns = self.table._extract_unique_columns(row)
        stored = self.table.find(unique_columns).get()
        return {**(stored or {}), **row}

    def __call__(self, rows: Iterable[Mapping[str, Any]]) -> Iterator[dict[str, Any]]:
        for row in rows:
            yield self.transform(row)
