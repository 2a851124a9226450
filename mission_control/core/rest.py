"""
Row store interface - the four filtered primitives the ops kernel persists through.
Filters map a column to a PostgREST predicate string (or a list of them, ANDed);
`select`, `order` and `limit` are reserved keys.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

Row = Dict[str, Any]
FilterValue = Union[str, int, float, bool, None, List[Union[str, int, float, bool]]]
Filters = Dict[str, FilterValue]

RESERVED_PARAMS = ("select", "order", "limit", "on_conflict")


def eq(value: Any) -> str:
    return f"eq.{_predicate_value(value)}"


def gte(value: Any) -> str:
    return f"gte.{_predicate_value(value)}"


def lt(value: Any) -> str:
    return f"lt.{_predicate_value(value)}"


def in_list(values: Iterable[Any]) -> str:
    return f"in.({','.join(_predicate_value(v) for v in values)})"


def _predicate_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Format a datetime the way the store stamps rows (UTC, millisecond precision, Z suffix)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return to_iso(utc_now())


def parse_iso(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime, or None if it is not one."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_day_bounds(now: datetime = None) -> Tuple[str, str]:
    """Return the [start, end) ISO bounds of the UTC calendar day containing `now`."""
    now = now or utc_now()
    now = now.astimezone(timezone.utc)
    start = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
    end = start + timedelta(days=1)
    return to_iso(start), to_iso(end)


def start_of_utc_day_iso(now: datetime = None) -> str:
    return utc_day_bounds(now)[0]


def since_iso(minutes: float = 0, hours: float = 0, now: datetime = None) -> str:
    """ISO timestamp for `now` minus the given offset."""
    now = now or utc_now()
    return to_iso(now - timedelta(minutes=minutes, hours=hours))


class RowStore(ABC):
    """Abstract row store. Any backend that can satisfy these four calls can host the kernel."""

    @abstractmethod
    def select_rows(self, table: str, filters: Filters = None) -> List[Row]:
        """Return rows of `table` matching `filters`."""
        pass

    @abstractmethod
    def insert_rows(self, table: str, rows: List[Row], on_conflict: str = None,
                    upsert: bool = False) -> List[Row]:
        """Insert rows and return them as stored. With `upsert`, rows conflicting on `on_conflict` are merged."""
        pass

    @abstractmethod
    def patch_rows(self, table: str, values: Row, filters: Filters) -> List[Row]:
        """Update rows matching `filters` and return the updated rows (empty when none matched)."""
        pass

    @abstractmethod
    def count_rows(self, table: str, filters: Filters = None) -> int:
        """Return the number of rows matching `filters`."""
        pass
