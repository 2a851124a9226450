"""
Mission status derivation. A mission's status is never set ad hoc; it is recomputed from its steps.
"""

from typing import Iterable, Optional

from ..core.rest import RowStore, eq, utc_now_iso
from .schema import MISSIONS_TABLE, STEPS_TABLE, JsonObject


def derive_mission_status(step_statuses: Iterable[str]) -> Optional[str]:
    """Derive a mission status from its step statuses; None when there are no steps.

    running beats queued, queued beats failed, and only an all-succeeded set is succeeded.
    """
    statuses = list(step_statuses)
    if not statuses:
        return None
    if "running" in statuses:
        return "running"
    if "queued" in statuses:
        return "queued"
    if "failed" in statuses:
        return "failed"
    return "succeeded"


def sync_mission_status(store: RowStore, mission_id: str) -> Optional[JsonObject]:
    """Recompute and persist a mission's status. A mission with no steps is left as is."""
    steps = store.select_rows(STEPS_TABLE, {
        "select": "status",
        "mission_id": eq(mission_id),
    })

    next_status = derive_mission_status(step.get("status") for step in steps)
    if next_status is None:
        return None

    now = utc_now_iso()
    update: JsonObject = {"status": next_status}

    if next_status == "running":
        update["started_at"] = now
        update["finished_at"] = None

    if next_status in ("succeeded", "failed"):
        update["finished_at"] = now

    rows = store.patch_rows(MISSIONS_TABLE, update, {"id": eq(mission_id)})
    return rows[0] if rows else None
