"""
In-memory row store tests - PostgREST filter, order, limit and upsert semantics.
"""

import pytest

from mission_control.core.memory_store import InMemoryRowStore
from mission_control.core.rest import eq, gte, in_list, lt


@pytest.fixture
def store():
    return InMemoryRowStore({
        "ops_steps": [
            {"id": "s1", "kind": "standup", "status": "queued", "attempts": 0, "created_at": "2026-03-01T10:00:00.000Z"},
            {"id": "s2", "kind": "moltza_post", "status": "running", "attempts": 1, "created_at": "2026-03-01T09:00:00.000Z"},
            {"id": "s3", "kind": "standup", "status": "succeeded", "attempts": 2, "created_at": "2026-03-02T08:00:00.000Z"},
            {"id": "s4", "kind": "outreach_check", "status": "failed", "attempts": 1, "created_at": None},
        ]
    })


class TestSelect:
    """Test filtered reads."""

    def test_eq_filter(self, store):
        rows = store.select_rows("ops_steps", {"kind": eq("standup")})
        assert [r["id"] for r in rows] == ["s1", "s3"]

    def test_in_filter(self, store):
        rows = store.select_rows("ops_steps", {"status": in_list(["queued", "running"])})
        assert {r["id"] for r in rows} == {"s1", "s2"}

    def test_range_filter_list_is_anded(self, store):
        rows = store.select_rows("ops_steps", {
            "created_at": [gte("2026-03-01T00:00:00.000Z"), lt("2026-03-02T00:00:00.000Z")],
        })
        assert {r["id"] for r in rows} == {"s1", "s2"}

    def test_null_never_matches_range(self, store):
        rows = store.select_rows("ops_steps", {"created_at": lt("2030-01-01T00:00:00.000Z")})
        assert "s4" not in {r["id"] for r in rows}

    def test_numeric_comparison(self, store):
        rows = store.select_rows("ops_steps", {"attempts": gte(1)})
        assert {r["id"] for r in rows} == {"s2", "s3", "s4"}

    def test_order_asc_puts_nulls_last(self, store):
        rows = store.select_rows("ops_steps", {"order": "created_at.asc"})
        assert [r["id"] for r in rows] == ["s2", "s1", "s3", "s4"]

    def test_order_desc_puts_nulls_first(self, store):
        rows = store.select_rows("ops_steps", {"order": "created_at.desc"})
        assert [r["id"] for r in rows] == ["s4", "s3", "s1", "s2"]

    def test_limit_and_projection(self, store):
        rows = store.select_rows("ops_steps", {"select": "id,status", "order": "created_at.asc", "limit": 2})
        assert rows == [{"id": "s2", "status": "running"}, {"id": "s1", "status": "queued"}]

    def test_unknown_table_is_empty(self, store):
        assert store.select_rows("agent_memories", {}) == []
        assert store.count_rows("agent_memories", {}) == 0

    def test_unsupported_operator_raises(self, store):
        with pytest.raises(ValueError, match="Unsupported filter operator"):
            store.select_rows("ops_steps", {"kind": "like.stand*"})

    def test_returned_rows_are_copies(self, store):
        row = store.select_rows("ops_steps", {"id": eq("s1")})[0]
        row["status"] = "mutated"
        assert store.select_rows("ops_steps", {"id": eq("s1")})[0]["status"] == "queued"


class TestInsert:
    """Test inserts and upserts."""

    def test_insert_stamps_id_and_created_at(self):
        store = InMemoryRowStore()
        rows = store.insert_rows("ops_events", [{"kind": "heartbeat"}])

        assert len(rows) == 1
        assert rows[0]["id"]
        assert rows[0]["created_at"].endswith("Z")
        assert store.count_rows("ops_events", {}) == 1

    def test_insert_keeps_explicit_id(self):
        store = InMemoryRowStore()
        rows = store.insert_rows("ops_events", [{"id": "e1", "kind": "heartbeat"}])
        assert rows[0]["id"] == "e1"

    def test_upsert_merges_on_conflict(self):
        store = InMemoryRowStore()
        store.insert_rows("ops_policy", [{"key": "ops_kernel_enabled", "value": True}])
        store.insert_rows("ops_policy", [{"key": "ops_kernel_enabled", "value": False}],
                          on_conflict="key", upsert=True)

        rows = store.rows("ops_policy")
        assert len(rows) == 1
        assert rows[0]["value"] is False

    def test_insert_without_upsert_duplicates(self):
        store = InMemoryRowStore()
        store.insert_rows("ops_policy", [{"key": "k", "value": 1}])
        store.insert_rows("ops_policy", [{"key": "k", "value": 2}])
        assert store.count_rows("ops_policy", {"key": eq("k")}) == 2


class TestPatch:
    """Test conditional patches."""

    def test_conditional_patch_matches(self, store):
        updated = store.patch_rows("ops_steps", {"status": "running"}, {"id": eq("s1"), "status": eq("queued")})
        assert len(updated) == 1
        assert updated[0]["status"] == "running"

    def test_conditional_patch_misses_when_status_changed(self, store):
        updated = store.patch_rows("ops_steps", {"status": "running"}, {"id": eq("s2"), "status": eq("queued")})
        assert updated == []
        assert store.select_rows("ops_steps", {"id": eq("s2")})[0]["status"] == "running"

    def test_eq_null_matches_missing_value(self, store):
        assert store.count_rows("ops_steps", {"created_at": eq(None)}) == 1
