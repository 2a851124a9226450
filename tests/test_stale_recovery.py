"""
Stale step recovery tests.
"""

from datetime import timedelta

import pytest

from mission_control.core.memory_store import InMemoryRowStore
from mission_control.core.rest import to_iso, utc_now
from mission_control.ops.recovery import recover_stale_running_steps
from mission_control.ops.schema import EVENTS_TABLE, MISSIONS_TABLE, STEPS_TABLE


def minutes_ago(minutes):
    return to_iso(utc_now() - timedelta(minutes=minutes))


@pytest.fixture
def store():
    store = InMemoryRowStore()
    store.insert_rows(MISSIONS_TABLE, [
        {"id": "m1", "status": "running"},
        {"id": "m2", "status": "running"},
    ])
    store.insert_rows(STEPS_TABLE, [
        {"id": "old", "mission_id": "m1", "proposal_id": "p1", "kind": "standup",
         "status": "running", "started_at": minutes_ago(45)},
        {"id": "fresh", "mission_id": "m2", "proposal_id": "p2", "kind": "moltza_post",
         "status": "running", "started_at": minutes_ago(5)},
        {"id": "done", "mission_id": "m2", "proposal_id": "p2", "kind": "outreach_check",
         "status": "succeeded", "started_at": minutes_ago(120)},
    ])
    return store


def step(store, step_id):
    return next(s for s in store.rows(STEPS_TABLE) if s["id"] == step_id)


class TestStaleRecovery:
    """Test recovery of steps stuck in running."""

    def test_recovers_only_stale_running_steps(self, store):
        recovered = recover_stale_running_steps(store)

        assert recovered == 1

        old = step(store, "old")
        assert old["status"] == "failed"
        assert old["last_error"] == "Recovered as stale running step (>30 minutes)."
        assert old["finished_at"] is not None

        assert step(store, "fresh")["status"] == "running"
        assert step(store, "done")["status"] == "succeeded"

    def test_records_event_and_syncs_mission(self, store):
        recover_stale_running_steps(store)

        events = [e for e in store.rows(EVENTS_TABLE) if e["kind"] == "step_recovered_stale"]
        assert len(events) == 1
        assert events[0]["step_id"] == "old"
        assert events[0]["summary"] == "Step standup was marked failed after running past 30 minutes."
        assert events[0]["meta"] == {"step_kind": "standup"}

        missions = {m["id"]: m for m in store.rows(MISSIONS_TABLE)}
        assert missions["m1"]["status"] == "failed"
        assert missions["m2"]["status"] == "running"

    def test_second_pass_recovers_nothing(self, store):
        recover_stale_running_steps(store)
        assert recover_stale_running_steps(store) == 0

    def test_lost_race_is_not_counted(self, store):
        original_patch = store.patch_rows

        def finish_first(table, values, filters):
            # another worker completes the step between fetch and patch
            if table == STEPS_TABLE and values.get("status") == "failed":
                original_patch(STEPS_TABLE, {"status": "succeeded"}, {"id": filters["id"]})
            return original_patch(table, values, filters)

        store.patch_rows = finish_first

        assert recover_stale_running_steps(store) == 0
        assert step(store, "old")["status"] == "succeeded"
        assert not [e for e in store.rows(EVENTS_TABLE) if e["kind"] == "step_recovered_stale"]
