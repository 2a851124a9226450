"""
Policy store tests - lazy seeding, per-field fallback and preservation of operator edits.
"""

import math

import pytest

from mission_control.core.memory_store import InMemoryRowStore
from mission_control.ops.policy import (
    POLICY_KEYS,
    bootstrap_policy_defaults,
    read_number,
    read_number_map,
    read_string_list,
)
from mission_control.ops.schema import DEFAULT_OPS_POLICY, POLICY_TABLE


@pytest.fixture
def store():
    return InMemoryRowStore()


def stored_policy(store):
    return {row["key"]: row["value"] for row in store.rows(POLICY_TABLE)}


class TestPolicyBootstrap:
    """Test seeding and reading the ops policy."""

    def test_empty_store_seeds_all_keys(self, store):
        policy = bootstrap_policy_defaults(store)

        assert policy == DEFAULT_OPS_POLICY
        assert set(stored_policy(store)) == set(POLICY_KEYS)

    def test_existing_values_are_not_overwritten(self, store):
        store.insert_rows(POLICY_TABLE, [{"key": "ops_kernel_enabled", "value": False}])

        policy = bootstrap_policy_defaults(store)

        assert policy.ops_kernel_enabled is False
        assert stored_policy(store)["ops_kernel_enabled"] is False
        assert len(store.rows(POLICY_TABLE)) == len(POLICY_KEYS)

    def test_second_bootstrap_is_idempotent(self, store):
        bootstrap_policy_defaults(store)
        bootstrap_policy_defaults(store)
        assert len(store.rows(POLICY_TABLE)) == len(POLICY_KEYS)

    def test_wrong_type_falls_back_to_default(self, store):
        store.insert_rows(POLICY_TABLE, [
            {"key": "ops_kernel_enabled", "value": "yes"},
            {"key": "heartbeat_process_limit", "value": "8"},
            {"key": "auto_approve_step_kinds", "value": "standup"},
        ])

        policy = bootstrap_policy_defaults(store)

        assert policy.ops_kernel_enabled is True
        assert policy.heartbeat_process_limit == 8
        assert policy.auto_approve_step_kinds == DEFAULT_OPS_POLICY.auto_approve_step_kinds

    def test_quota_map_overlays_defaults(self, store):
        store.insert_rows(POLICY_TABLE, [
            {"key": "daily_quotas", "value": {"standup": 2, "moltza_post": "lots", "custom": 7}},
        ])

        policy = bootstrap_policy_defaults(store)

        assert policy.daily_quotas == {"standup": 2, "moltza_post": 3, "outreach_check": 4, "custom": 7}

    def test_empty_allow_list_is_kept(self, store):
        store.insert_rows(POLICY_TABLE, [{"key": "auto_approve_step_kinds", "value": []}])

        policy = bootstrap_policy_defaults(store)

        assert policy.auto_approve_step_kinds == []

    def test_returned_policy_does_not_alias_defaults(self, store):
        policy = bootstrap_policy_defaults(store)
        policy.daily_quotas["standup"] = 99
        assert DEFAULT_OPS_POLICY.daily_quotas["standup"] == 1


class TestPolicyReaders:
    """Test the value readers."""

    def test_read_number_rejects_bool_and_nan(self):
        assert read_number(True, 5) == 5
        assert read_number(math.nan, 5) == 5
        assert read_number(math.inf, 5) == 5
        assert read_number(2.5, 5) == 2.5

    def test_read_string_list_filters_non_strings(self):
        assert read_string_list(["a", 1, None, "b"], ["x"]) == ["a", "b"]
        assert read_string_list({"a": 1}, ["x"]) == ["x"]

    def test_read_number_map_ignores_invalid_entries(self):
        assert read_number_map({"a": 1, "b": "2", "c": False}, {"b": 3}) == {"a": 1, "b": 3}
        assert read_number_map(None, {"b": 3}) == {"b": 3}
