"""
Dashboard reads and table health checks.
"""

from typing import Any, Dict

from ..core.errors import RowStoreError
from ..core.rest import RowStore, eq, in_list, utc_now_iso
from ..util.logging import logger
from .schema import EVENT_COLUMNS, EVENTS_TABLE, MEMORIES_TABLE, STEP_COLUMNS, STEPS_TABLE

DASHBOARD_EVENT_LIMIT = 30
DASHBOARD_STEP_LIMIT = 50

HEALTH_TABLES = (EVENTS_TABLE, STEPS_TABLE, MEMORIES_TABLE)


def _latest_event(store: RowStore, kind: str):
    rows = store.select_rows(EVENTS_TABLE, {
        "select": EVENT_COLUMNS,
        "kind": eq(kind),
        "order": "created_at.desc",
        "limit": 1,
    })
    return rows[0] if rows else None


def list_ops_dashboard_data(store: RowStore) -> Dict[str, Any]:
    """Recent events, active steps and the latest heartbeat/standup/briefing events."""
    events = store.select_rows(EVENTS_TABLE, {
        "select": EVENT_COLUMNS,
        "order": "created_at.desc",
        "limit": DASHBOARD_EVENT_LIMIT,
    })
    active_steps = store.select_rows(STEPS_TABLE, {
        "select": STEP_COLUMNS,
        "status": in_list(["queued", "running"]),
        "order": "created_at.asc",
        "limit": DASHBOARD_STEP_LIMIT,
    })

    return {
        "events": events,
        "active_steps": active_steps,
        "status": {
            "last_heartbeat": _latest_event(store, "heartbeat"),
            "last_standup": _latest_event(store, "standup_generated"),
            "last_briefing": _latest_event(store, "briefing_generated"),
        },
    }


def check_ops_db_health(store: RowStore) -> Dict[str, Any]:
    """Count rows in each monitored table; a table that cannot be counted is unreachable."""
    tables = {}
    for table in HEALTH_TABLES:
        try:
            tables[table] = {"reachable": True, "row_count": store.count_rows(table, {})}
        except RowStoreError as e:
            logger.log_operation("health.table", "unreachable", {"table": table, "error": str(e)})
            tables[table] = {"reachable": False, "row_count": 0}

    return {
        "ok": all(entry["reachable"] for entry in tables.values()),
        "checked_at": utc_now_iso(),
        "tables": tables,
    }
