"""
Standup, morning briefing, dashboard and health tests.
"""

from datetime import timedelta

import pytest
from unittest.mock import patch

from mission_control.core.errors import RowStoreError
from mission_control.core.memory_store import InMemoryRowStore
from mission_control.core.rest import to_iso, utc_now
from mission_control.ops.dashboard import check_ops_db_health, list_ops_dashboard_data
from mission_control.ops.heartbeat import run_ops_heartbeat
from mission_control.ops.schema import EVENTS_TABLE, MEMORIES_TABLE
from mission_control.ops.summaries import (
    build_morning_briefing,
    build_standup_summary,
    parse_window_hours,
    truncate,
)


def hours_ago(hours):
    return to_iso(utc_now() - timedelta(hours=hours))


@pytest.fixture
def store():
    store = InMemoryRowStore()
    run_ops_heartbeat(store)
    store.insert_rows(MEMORIES_TABLE, [
        {"agent": "scout", "text": "Lead from the meetup wants a demo.", "tags": ["leads"], "metadata": {}},
        {"agent": "writer", "text": "x" * 300, "tags": [], "metadata": {}, "created_at": hours_ago(2)},
        {"agent": "old", "text": "Ancient note", "tags": [], "metadata": {}, "created_at": hours_ago(100)},
    ])
    return store


class TestHelpers:
    """Test parsing and formatting helpers."""

    @pytest.mark.parametrize("raw, expected", [
        (None, 24),
        ("", 24),
        ("abc", 24),
        ("nan", 24),
        ("inf", 24),
        ("6", 6),
        ("6.9", 6),
        ("0", 1),
        ("-5", 1),
        ("500", 72),
    ])
    def test_parse_window_hours(self, raw, expected):
        assert parse_window_hours(raw) == expected

    def test_truncate(self):
        assert truncate("short") == "short"
        text = truncate("y" * 200)
        assert len(text) == 142
        assert text.endswith("...")


class TestStandupSummary:
    """Test the standup summary."""

    def test_metrics_and_text(self, store):
        summary = build_standup_summary(store, window_hours=24)

        assert summary["ok"] is True
        assert summary["type"] == "standup"
        assert summary["window_hours"] == 24
        assert summary["metrics"]["memories_in_window"] == 2
        assert summary["metrics"]["steps_in_window"]["succeeded"] == 3
        assert summary["metrics"]["missions_in_window"]["succeeded"] == 3
        assert summary["metrics"]["queue_depth"] == {"queued": 0, "running": 0}
        assert summary["active_steps"] == []

        lines = summary["text"].split("\n")
        assert lines[0].startswith("Mission Control Standup (")
        assert lines[1] == "Window: last 24 hour(s)"
        assert "Highlights:" in lines
        assert "Shared Memory:" in lines
        assert any(line.startswith("- [scout] Lead from the meetup") for line in lines)
        assert any(line == "- [writer] " + "x" * 139 + "..." for line in lines)
        assert not any("Ancient note" in line for line in lines)

    def test_window_is_clamped(self, store):
        assert build_standup_summary(store, window_hours=500)["window_hours"] == 72
        assert build_standup_summary(store, window_hours=0.5)["window_hours"] == 1

    def test_records_event(self, store):
        summary = build_standup_summary(store)

        events = [e for e in store.rows(EVENTS_TABLE) if e["kind"] == "standup_generated"]
        assert len(events) == 1
        assert events[0]["summary"] == summary["text"]
        assert events[0]["tags"] == ["ops", "summary", "standup"]
        assert events[0]["meta"]["window_hours"] == 24

    def test_record_event_can_be_skipped(self, store):
        build_standup_summary(store, record_event=False)
        assert not [e for e in store.rows(EVENTS_TABLE) if e["kind"] == "standup_generated"]

    def test_event_lines_are_limited(self, store):
        summary = build_standup_summary(store)
        text = summary["text"]
        highlights = text.split("Highlights:\n", 1)[1].split("\n\n", 1)[0]
        assert 0 < len(highlights.split("\n")) <= 5


class TestMorningBriefing:
    """Test the morning briefing."""

    def test_no_standup_yet(self, store):
        briefing = build_morning_briefing(store)

        assert briefing["type"] == "briefing"
        assert briefing["window_hours"] == 24
        assert "Last standup generated: none" in briefing["text"]
        assert briefing["highlights"][3] == "No standup summary has been generated yet."
        assert briefing["text"].startswith("Mission Control Morning Briefing (")

    def test_mentions_last_standup(self, store):
        build_standup_summary(store)

        briefing = build_morning_briefing(store)

        standup_event = [e for e in store.rows(EVENTS_TABLE) if e["kind"] == "standup_generated"][0]
        assert f"Last standup generated: {standup_event['created_at']}" in briefing["text"]

    def test_records_event(self, store):
        build_morning_briefing(store)

        events = [e for e in store.rows(EVENTS_TABLE) if e["kind"] == "briefing_generated"]
        assert len(events) == 1
        assert events[0]["tags"] == ["ops", "summary", "briefing"]
        assert events[0]["meta"]["queue_depth"] == {"queued": 0, "running": 0}


class TestDashboardAndHealth:
    """Test dashboard reads and table health."""

    def test_dashboard_data(self, store):
        build_standup_summary(store)

        data = list_ops_dashboard_data(store)

        assert 0 < len(data["events"]) <= 30
        assert data["active_steps"] == []
        assert data["status"]["last_heartbeat"]["kind"] == "heartbeat"
        assert data["status"]["last_standup"]["kind"] == "standup_generated"
        assert data["status"]["last_briefing"] is None

    def test_health_counts_tables(self, store):
        health = check_ops_db_health(store)

        assert health["ok"] is True
        assert health["tables"]["agent_memories"] == {"reachable": True, "row_count": 3}
        assert health["tables"]["ops_steps"]["row_count"] == 3

    def test_unreachable_table(self, store):
        original_count = store.count_rows

        def failing_count(table, filters=None):
            if table == MEMORIES_TABLE:
                raise RowStoreError("PostgREST HEAD agent_memories failed (404): missing")
            return original_count(table, filters)

        with patch.object(store, "count_rows", side_effect=failing_count):
            health = check_ops_db_health(store)

        assert health["ok"] is False
        assert health["tables"]["agent_memories"] == {"reachable": False, "row_count": 0}
        assert health["tables"]["ops_events"]["reachable"] is True
