"""
Stale step recovery - fails steps left `running` by an executor that crashed or hung.
"""

from ..core.rest import RowStore, eq, lt, since_iso, utc_now_iso
from ..util.logging import logger
from .events import create_event
from .missions import sync_mission_status
from .schema import STEP_COLUMNS, STEPS_TABLE

STALE_STEP_MINUTES = 30
STALE_BATCH_LIMIT = 100


def recover_stale_running_steps(store: RowStore, stale_after_minutes: int = STALE_STEP_MINUTES) -> int:
    """Mark steps running for longer than `stale_after_minutes` as failed.

    Returns the number of steps this call recovered. A step flipped by a concurrent
    caller between the fetch and the conditional patch is not counted.
    """
    cutoff = since_iso(minutes=stale_after_minutes)
    stale_steps = store.select_rows(STEPS_TABLE, {
        "select": STEP_COLUMNS,
        "status": eq("running"),
        "started_at": lt(cutoff),
        "order": "started_at.asc",
        "limit": STALE_BATCH_LIMIT,
    })

    recovered = 0
    for step in stale_steps:
        updated = store.patch_rows(
            STEPS_TABLE,
            {
                "status": "failed",
                "last_error": f"Recovered as stale running step (>{stale_after_minutes} minutes).",
                "finished_at": utc_now_iso(),
            },
            {
                "id": eq(step["id"]),
                "status": eq("running"),
            },
        )
        if not updated:
            continue

        create_event(
            store,
            kind="step_recovered_stale",
            title="Recovered stale running step",
            summary=f"Step {step.get('kind')} was marked failed after running past {stale_after_minutes} minutes.",
            tags=["ops", "step", "recovery"],
            proposal_id=step.get("proposal_id"),
            mission_id=step.get("mission_id"),
            step_id=step["id"],
            meta={"step_kind": step.get("kind")},
        )
        logger.log_step_transition(step["id"], step.get("kind"), "failed", {"reason": "stale"})

        sync_mission_status(store, step["mission_id"])
        recovered += 1

    return recovered
