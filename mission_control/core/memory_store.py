"""
In-memory row store with PostgREST filter semantics.
Used for local development (ROW_STORE_PROVIDER=memory) and tests.
"""

import copy
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from .rest import RESERVED_PARAMS, Filters, Row, RowStore, parse_iso, utc_now_iso

# Columns stamped on insert when the caller leaves them out
DEFAULT_COLUMNS = {"created_at": utc_now_iso}


class InMemoryRowStore(RowStore):
    """Thread-safe dict-of-lists store. Each primitive runs under one lock, so conditional patches are atomic."""

    def __init__(self, tables: Dict[str, List[Row]] = None):
        self._lock = threading.Lock()
        self._tables: Dict[str, List[Row]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }

    def rows(self, table: str) -> List[Row]:
        """Snapshot of every row in `table` (for inspection in tests and tooling)."""
        with self._lock:
            return copy.deepcopy(self._tables.get(table, []))

    def select_rows(self, table: str, filters: Filters = None) -> List[Row]:
        filters = filters or {}
        with self._lock:
            matched = [row for row in self._tables.get(table, []) if _matches(row, filters)]
            matched = _apply_order(matched, filters.get("order"))
            limit = filters.get("limit")
            if limit is not None:
                matched = matched[:int(limit)]
            return [_project(row, filters.get("select")) for row in matched]

    def insert_rows(self, table: str, rows: List[Row], on_conflict: str = None,
                    upsert: bool = False) -> List[Row]:
        inserted = []
        with self._lock:
            existing = self._tables.setdefault(table, [])
            for row in rows:
                record = copy.deepcopy(row)

                if upsert and on_conflict:
                    target = _find_conflict(existing, record, on_conflict)
                    if target is not None:
                        target.update(record)
                        inserted.append(copy.deepcopy(target))
                        continue

                record.setdefault("id", str(uuid.uuid4()))
                for column, factory in DEFAULT_COLUMNS.items():
                    record.setdefault(column, factory())
                existing.append(record)
                inserted.append(copy.deepcopy(record))
        return inserted

    def patch_rows(self, table: str, values: Row, filters: Filters) -> List[Row]:
        updated = []
        with self._lock:
            for row in self._tables.get(table, []):
                if _matches(row, filters):
                    row.update(copy.deepcopy(values))
                    updated.append(copy.deepcopy(row))
        return updated

    def count_rows(self, table: str, filters: Filters = None) -> int:
        filters = filters or {}
        with self._lock:
            return sum(1 for row in self._tables.get(table, []) if _matches(row, filters))


def _find_conflict(rows: List[Row], record: Row, on_conflict: str) -> Optional[Row]:
    columns = [c.strip() for c in on_conflict.split(",") if c.strip()]
    for row in rows:
        if all(row.get(c) == record.get(c) for c in columns):
            return row
    return None


def _project(row: Row, select: Optional[str]) -> Row:
    if not select or select.strip() == "*":
        return copy.deepcopy(row)
    columns = [c.strip() for c in select.split(",") if c.strip()]
    return {c: copy.deepcopy(row.get(c)) for c in columns}


def _apply_order(rows: List[Row], order: Optional[str]) -> List[Row]:
    if not order:
        return rows

    column, _, direction = order.partition(".")
    descending = direction.startswith("desc")
    present = [row for row in rows if row.get(column) is not None]
    missing = [row for row in rows if row.get(column) is None]
    present.sort(key=lambda row: _sort_key(row.get(column)), reverse=descending)
    # PostgREST puts nulls last for asc and first for desc
    return missing + present if descending else present + missing


def _sort_key(value: Any):
    moment = parse_iso(value) if isinstance(value, str) else None
    if moment is not None:
        return (0, moment.timestamp(), "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, float(value), "")
    return (1, 0.0, str(value))


def _matches(row: Row, filters: Filters) -> bool:
    for column, value in filters.items():
        if column in RESERVED_PARAMS or value is None:
            continue
        predicates = value if isinstance(value, (list, tuple)) else [value]
        for predicate in predicates:
            if not _check_predicate(row.get(column), str(predicate)):
                return False
    return True


def _check_predicate(actual: Any, predicate: str) -> bool:
    operator, _, expected = predicate.partition(".")
    check = _OPERATORS.get(operator)
    if check is None:
        raise ValueError(f"Unsupported filter operator: {predicate}")
    return check(actual, expected)


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _compare(actual: Any, expected: str) -> Optional[int]:
    """Three-way compare of a stored value against a predicate operand; None when incomparable."""
    if actual is None:
        return None

    actual_time = parse_iso(actual) if isinstance(actual, str) else None
    expected_time = parse_iso(expected)
    if actual_time is not None and expected_time is not None:
        return (actual_time > expected_time) - (actual_time < expected_time)

    if isinstance(actual, (int, float)) and not isinstance(actual, bool):
        try:
            number = float(expected)
        except ValueError:
            return None
        return (actual > number) - (actual < number)

    text = _as_text(actual)
    return (text > expected) - (text < expected)


def _in(actual: Any, expected: str) -> bool:
    options = expected.strip()
    if options.startswith("(") and options.endswith(")"):
        options = options[1:-1]
    return _as_text(actual) in [o.strip() for o in options.split(",")]


def _eq(actual: Any, expected: str) -> bool:
    if expected == "null":
        return actual is None
    comparison = _compare(actual, expected)
    return comparison == 0


def _ordered(accept: Callable[[int], bool]) -> Callable[[Any, str], bool]:
    def check(actual: Any, expected: str) -> bool:
        comparison = _compare(actual, expected)
        return comparison is not None and accept(comparison)
    return check


_OPERATORS: Dict[str, Callable[[Any, str], bool]] = {
    "eq": _eq,
    "neq": lambda actual, expected: not _eq(actual, expected),
    "gte": _ordered(lambda c: c >= 0),
    "gt": _ordered(lambda c: c > 0),
    "lte": _ordered(lambda c: c <= 0),
    "lt": _ordered(lambda c: c < 0),
    "in": _in,
}
