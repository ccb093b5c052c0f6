"""Named parameter allocation for generated statements."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from litetable.errors import InvalidParameterTypeError

PLACEHOLDER_PREFIX = "$p"


def to_sql_value(value: Any) -> Any:
    """Convert a Python value to its SQLite storage representation.

    Booleans become 1/0 and datetimes become integer milliseconds since the
    epoch (naive datetimes are taken as UTC). A plain date is stored as its
    midnight UTC. Containers and other objects are rejected.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (int, float, str, bytes)):
        return value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, date):
        midnight = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        return int(midnight.timestamp() * 1000)
    raise InvalidParameterTypeError(value)


class ParameterBinder:
    """Allocates ``$p1``, ``$p2``, ... for one statement.

    ``params`` is keyed by the placeholder name without its ``$`` sigil,
    which is how sqlite3 looks named parameters up.
    """

    def __init__(self) -> None:
        self.params: dict[str, Any] = {}
        self._next_id = 1

    def add_param(self, value: Any) -> str:
        converted = to_sql_value(value)
        placeholder = f"{PLACEHOLDER_PREFIX}{self._next_id}"
        self._next_id += 1
        self.params[placeholder[1:]] = converted
        return placeholder

    def __len__(self) -> int:
        return len(self.params)
