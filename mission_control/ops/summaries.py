"""
Standup and morning briefing builders.

Both builders read recent ops activity and shared agent memories, render a
plain-text block plus structured metrics, and (by default) record an audit event.
"""

import math
from typing import Any, Dict, List

from ..core.rest import RowStore, eq, gte, in_list, since_iso, start_of_utc_day_iso, utc_now_iso
from ..util.logging import logger
from .events import create_event
from .heartbeat import count_queue_depth
from .schema import EVENTS_TABLE, MEMORIES_TABLE, MISSIONS_TABLE, STEP_STATUSES, STEPS_TABLE, JsonObject

MIN_WINDOW_HOURS = 1
MAX_WINDOW_HOURS = 72
DEFAULT_WINDOW_HOURS = 24
LINE_MAX_LENGTH = 140

SUMMARY_EVENT_COLUMNS = "id,kind,title,summary,created_at"
SUMMARY_STEP_COLUMNS = "id,kind,status,created_at,started_at"
MEMORY_COLUMNS = "id,agent,text,tags,metadata,created_at"

COUNTED_STATUSES = STEP_STATUSES


def truncate(text: str, max_length: int = LINE_MAX_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    return f"{text[:max_length - 1]}..."


def clamp_window_hours(hours: float) -> int:
    return min(MAX_WINDOW_HOURS, max(MIN_WINDOW_HOURS, math.floor(hours)))


def parse_window_hours(raw: Any, fallback: int = DEFAULT_WINDOW_HOURS) -> int:
    """Parse a `hours` query value. Missing or non-numeric values use the fallback."""
    if raw is None or raw == "":
        return fallback
    try:
        parsed = float(raw)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(parsed):
        return fallback
    return clamp_window_hours(parsed)


def build_event_lines(events: List[JsonObject], limit: int = 5) -> List[str]:
    return [
        f"- {event.get('kind')}: {truncate(event.get('summary') or event.get('title') or '')}"
        for event in events[:limit]
    ]


def build_memory_lines(memories: List[JsonObject], limit: int = 4) -> List[str]:
    return [
        f"- [{memory.get('agent')}] {truncate(memory.get('text') or '')}"
        for memory in memories[:limit]
    ]


def count_statuses(store: RowStore, table: str, since: str) -> Dict[str, int]:
    """Count rows per status among rows created at or after `since`."""
    return {
        status: store.count_rows(table, {"status": eq(status), "created_at": gte(since)})
        for status in COUNTED_STATUSES
    }


def _select_active_steps(store: RowStore) -> List[JsonObject]:
    return store.select_rows(STEPS_TABLE, {
        "select": SUMMARY_STEP_COLUMNS,
        "status": in_list(["queued", "running"]),
        "order": "created_at.asc",
        "limit": 10,
    })


def _select_memories(store: RowStore, since: str) -> List[JsonObject]:
    return store.select_rows(MEMORIES_TABLE, {
        "select": MEMORY_COLUMNS,
        "created_at": gte(since),
        "order": "created_at.desc",
        "limit": 8,
    })


def _record_summary_event(store: RowStore, kind: str, title: str, text: str, meta: JsonObject):
    create_event(
        store,
        kind=kind,
        title=title,
        summary=text,
        tags=["ops", "summary", kind.replace("_generated", "")],
        meta=meta,
    )


def build_standup_summary(store: RowStore, window_hours: float = DEFAULT_WINDOW_HOURS,
                          record_event: bool = True) -> Dict[str, Any]:
    """
    Build the standup summary for the trailing window.

    Args:
        store: Row store
        window_hours: Window length; floored and clamped to 1..72
        record_event: Write a `standup_generated` event with the rendered text

    Returns:
        Summary dict with text, highlights, metrics and the rows it was built from
    """
    hours = clamp_window_hours(window_hours)
    since = since_iso(hours=hours)
    generated_at = utc_now_iso()

    recent_events = store.select_rows(EVENTS_TABLE, {
        "select": SUMMARY_EVENT_COLUMNS,
        "created_at": gte(since),
        "order": "created_at.desc",
        "limit": 12,
    })
    recent_memories = _select_memories(store, since)
    active_steps = _select_active_steps(store)
    events_in_window = store.count_rows(EVENTS_TABLE, {"created_at": gte(since)})
    memories_in_window = store.count_rows(MEMORIES_TABLE, {"created_at": gte(since)})
    queue_depth = count_queue_depth(store)
    steps_in_window = count_statuses(store, STEPS_TABLE, since)
    missions_in_window = count_statuses(store, MISSIONS_TABLE, since)

    highlights = [
        f"{events_in_window} ops event(s) captured in the last {hours}h.",
        f"{steps_in_window['succeeded']} step(s) succeeded, {steps_in_window['failed']} failed in that window.",
        f"Queue depth is {queue_depth.queued} queued / {queue_depth.running} running.",
        f"{memories_in_window} shared memory item(s) were written.",
    ]

    text = "\n".join([
        f"Mission Control Standup ({generated_at})",
        f"Window: last {hours} hour(s)",
        f"Ops activity: {events_in_window} event(s), {missions_in_window['succeeded']} mission(s) succeeded, "
        f"{missions_in_window['failed']} failed.",
        f"Step queue: {queue_depth.queued} queued, {queue_depth.running} running.",
        "",
        "Highlights:",
        *build_event_lines(recent_events, 5),
        "",
        "Shared Memory:",
        *build_memory_lines(recent_memories, 4),
    ])

    if record_event:
        _record_summary_event(store, "standup_generated", "Standup summary generated", text, {
            "window_hours": hours,
            "events_in_window": events_in_window,
            "memories_in_window": memories_in_window,
        })
    logger.log_summary("standup", hours, record_event)

    return {
        "ok": True,
        "generated_at": generated_at,
        "type": "standup",
        "window_hours": hours,
        "text": text,
        "highlights": highlights,
        "metrics": {
            "events_in_window": events_in_window,
            "queue_depth": queue_depth.to_dict(),
            "steps_in_window": steps_in_window,
            "missions_in_window": missions_in_window,
            "memories_in_window": memories_in_window,
        },
        "recent_events": recent_events,
        "recent_memories": recent_memories,
        "active_steps": active_steps,
    }


def build_morning_briefing(store: RowStore, record_event: bool = True) -> Dict[str, Any]:
    """Build the morning briefing: events since 00:00 UTC plus trailing 24h metrics."""
    hours = DEFAULT_WINDOW_HOURS
    since_midnight = start_of_utc_day_iso()
    recent_since = since_iso(hours=hours)
    generated_at = utc_now_iso()

    events_since_midnight = store.select_rows(EVENTS_TABLE, {
        "select": SUMMARY_EVENT_COLUMNS,
        "created_at": gte(since_midnight),
        "order": "created_at.desc",
        "limit": 15,
    })
    queue_depth = count_queue_depth(store)
    active_steps = _select_active_steps(store)
    recent_memories = _select_memories(store, recent_since)
    memories_in_window = store.count_rows(MEMORIES_TABLE, {"created_at": gte(recent_since)})
    events_in_window = store.count_rows(EVENTS_TABLE, {"created_at": gte(recent_since)})
    steps_in_window = count_statuses(store, STEPS_TABLE, recent_since)
    missions_in_window = count_statuses(store, MISSIONS_TABLE, recent_since)
    last_standup = store.select_rows(EVENTS_TABLE, {
        "select": SUMMARY_EVENT_COLUMNS,
        "kind": eq("standup_generated"),
        "order": "created_at.desc",
        "limit": 1,
    })

    last_standup_at = last_standup[0].get("created_at") if last_standup else None

    highlights = [
        f"{len(events_since_midnight)} event(s) logged since 00:00 UTC.",
        f"Queue currently {queue_depth.queued} queued / {queue_depth.running} running.",
        f"Past 24h: {missions_in_window['succeeded']} mission(s) succeeded and "
        f"{steps_in_window['failed']} step(s) failed.",
        f"Most recent standup was generated at {last_standup_at}."
        if last_standup_at else "No standup summary has been generated yet.",
    ]

    text = "\n".join([
        f"Mission Control Morning Briefing ({generated_at})",
        "Coverage: since 00:00 UTC plus trailing 24h metrics",
        f"Queue depth: {queue_depth.queued} queued, {queue_depth.running} running.",
        f"Trailing 24h: {events_in_window} event(s), {missions_in_window['succeeded']} mission(s) succeeded, "
        f"{missions_in_window['failed']} failed.",
        f"Last standup generated: {last_standup_at or 'none'}",
        "",
        "Overnight Events:",
        *build_event_lines(events_since_midnight, 6),
        "",
        "Shared Memory Notes:",
        *build_memory_lines(recent_memories, 4),
    ])

    if record_event:
        _record_summary_event(store, "briefing_generated", "Morning briefing generated", text, {
            "since_midnight_utc": since_midnight,
            "events_since_midnight": len(events_since_midnight),
            "queue_depth": queue_depth.to_dict(),
            "memories_in_24h": memories_in_window,
        })
    logger.log_summary("briefing", hours, record_event)

    return {
        "ok": True,
        "generated_at": generated_at,
        "type": "briefing",
        "window_hours": hours,
        "text": text,
        "highlights": highlights,
        "metrics": {
            "events_in_window": events_in_window,
            "queue_depth": queue_depth.to_dict(),
            "steps_in_window": steps_in_window,
            "missions_in_window": missions_in_window,
            "memories_in_window": memories_in_window,
        },
        "recent_events": events_since_midnight,
        "recent_memories": recent_memories,
        "active_steps": active_steps,
    }
