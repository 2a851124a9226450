"""
Ops policy store - persisted key/value configuration with lazily seeded defaults.
"""

import math
from typing import Any, Dict, List

from ..core.rest import RowStore
from ..util.logging import logger
from .schema import DEFAULT_OPS_POLICY, POLICY_TABLE, OpsPolicy

POLICY_KEYS = (
    "ops_kernel_enabled",
    "auto_approve_step_kinds",
    "daily_quotas",
    "trigger_cooldowns_minutes",
    "heartbeat_process_limit",
    "heartbeat_time_budget_ms",
)


def policy_seed_rows(defaults: OpsPolicy = DEFAULT_OPS_POLICY) -> List[Dict[str, Any]]:
    """One `{key, value}` row per well-known policy key."""
    values = defaults.to_dict()
    return [{"key": key, "value": values[key]} for key in POLICY_KEYS]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def read_number(value: Any, fallback: float) -> float:
    if _is_number(value):
        return value
    return fallback


def read_boolean(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    return fallback


def read_string_list(value: Any, fallback: List[str]) -> List[str]:
    if not isinstance(value, list):
        return list(fallback)
    return [entry for entry in value if isinstance(entry, str)]


def read_number_map(value: Any, fallback: Dict[str, float]) -> Dict[str, float]:
    """Overlay the finite-number entries of `value` onto a copy of `fallback`."""
    if not isinstance(value, dict):
        return dict(fallback)
    mapped = dict(fallback)
    for key, entry in value.items():
        if _is_number(entry):
            mapped[key] = entry
    return mapped


def _read_field(key: str, policy_map: Dict[str, Any], defaults: Dict[str, Any]):
    default = defaults[key]
    stored = policy_map.get(key, default)

    if key == "ops_kernel_enabled":
        value = read_boolean(stored, default)
        valid = isinstance(stored, bool)
    elif key == "auto_approve_step_kinds":
        value = read_string_list(stored, default)
        valid = isinstance(stored, list)
    elif key in ("daily_quotas", "trigger_cooldowns_minutes"):
        value = read_number_map(stored, default)
        valid = isinstance(stored, dict)
    else:
        value = read_number(stored, default)
        valid = _is_number(stored)

    if not valid and key in policy_map:
        logger.log_policy_fallback(key, stored)

    return value


def bootstrap_policy_defaults(store: RowStore, defaults: OpsPolicy = DEFAULT_OPS_POLICY) -> OpsPolicy:
    """
    Seed any missing policy keys, then read the full policy.

    Stored values that have the wrong type fall back to `defaults` field by field;
    existing rows are never overwritten.

    Args:
        store: Row store holding the `ops_policy` table
        defaults: Policy used for seeding and as per-field fallback

    Returns:
        The effective OpsPolicy
    """
    existing_rows = store.select_rows(POLICY_TABLE, {"select": "key,value"})
    existing_keys = {row.get("key") for row in existing_rows}

    missing = [row for row in policy_seed_rows(defaults) if row["key"] not in existing_keys]
    if missing:
        store.insert_rows(POLICY_TABLE, missing, on_conflict="key", upsert=True)
        logger.log_operation("policy.seed", "success", {"keys": [row["key"] for row in missing]})

    rows = store.select_rows(POLICY_TABLE, {"select": "key,value"})
    policy_map = {row.get("key"): row.get("value") for row in rows}
    default_values = defaults.to_dict()

    return OpsPolicy(**{key: _read_field(key, policy_map, default_values) for key in POLICY_KEYS})


def load_policy(store: RowStore) -> OpsPolicy:
    """Effective policy with the built-in defaults."""
    return bootstrap_policy_defaults(store, DEFAULT_OPS_POLICY)
