"""
Step executor - claims queued steps oldest-first, runs them through a pluggable executor,
records the outcome and re-derives the parent mission's status.
"""

import time
from abc import ABC, abstractmethod
from typing import Optional

from ..core.rest import RowStore, eq, utc_now_iso
from ..util.logging import logger
from .events import create_event
from .missions import sync_mission_status
from .schema import MISSIONS_TABLE, STEP_COLUMNS, STEPS_TABLE, JsonObject, ProcessQueuedSummary


class StepExecutor(ABC):
    """Runs the work behind a step. Return False or raise to fail the step."""

    @abstractmethod
    def execute(self, step: JsonObject) -> bool:
        pass


class EventRecordingExecutor(StepExecutor):
    """Default executor: performs no side effects, only records a `step_executed` event."""

    def __init__(self, store: RowStore):
        self.store = store

    def execute(self, step: JsonObject) -> bool:
        create_event(
            self.store,
            kind="step_executed",
            title=f"Executed step: {step.get('kind')}",
            summary="MVP executor recorded the step execution event.",
            tags=["ops", "step", "executed"],
            proposal_id=step.get("proposal_id"),
            mission_id=step.get("mission_id"),
            step_id=step.get("id"),
            meta={
                "step_kind": step.get("kind"),
                "payload": step.get("payload") or {},
            },
        )
        return True


def claim_step(store: RowStore, step: JsonObject) -> Optional[JsonObject]:
    """Move a step queued->running. Returns None if another caller claimed it first."""
    claimed = store.patch_rows(
        STEPS_TABLE,
        {
            "status": "running",
            "started_at": utc_now_iso(),
            "attempts": int(step.get("attempts") or 0) + 1,
            "last_error": None,
        },
        {
            "id": eq(step["id"]),
            "status": eq("queued"),
        },
    )
    return claimed[0] if claimed else None


def _finish_step(store: RowStore, step: JsonObject, status: str, error: str = None):
    values = {"status": status, "finished_at": utc_now_iso()}
    if error is not None:
        values["last_error"] = error

    store.patch_rows(STEPS_TABLE, values, {
        "id": eq(step["id"]),
        "status": eq("running"),
    })


def process_queued_steps(store: RowStore, limit: int, time_budget_ms: float,
                         executor: StepExecutor = None) -> ProcessQueuedSummary:
    """
    Process up to `limit` queued steps, oldest first.

    The time budget is checked between steps; steps not reached stay queued for the
    next heartbeat. Execution failures are recorded on the step and never abort the
    batch; store failures propagate.

    Args:
        store: Row store
        limit: Maximum number of steps fetched
        time_budget_ms: Wall-clock budget for the whole batch
        executor: Step executor (defaults to EventRecordingExecutor)

    Returns:
        ProcessQueuedSummary with attempted/succeeded/failed counts
    """
    executor = executor or EventRecordingExecutor(store)
    queued = store.select_rows(STEPS_TABLE, {
        "select": STEP_COLUMNS,
        "status": eq("queued"),
        "order": "created_at.asc",
        "limit": limit,
    })

    summary = ProcessQueuedSummary()
    started_at = time.monotonic()

    for step in queued:
        elapsed_ms = (time.monotonic() - started_at) * 1000
        if elapsed_ms > time_budget_ms:
            summary.skipped_by_budget = True
            break

        summary.attempted += 1

        claimed = claim_step(store, step)
        if claimed is None:
            continue

        store.patch_rows(
            MISSIONS_TABLE,
            {"status": "running", "started_at": utc_now_iso()},
            {"id": eq(step["mission_id"])},
        )

        try:
            if not executor.execute(claimed):
                raise RuntimeError("Executor reported failure.")

            _finish_step(store, step, "succeeded")
            summary.succeeded += 1
            logger.log_step_transition(step["id"], step.get("kind"), "succeeded")
        except Exception as e:
            _finish_step(store, step, "failed", error=str(e))
            create_event(
                store,
                kind="step_failed",
                title=f"Step failed: {step.get('kind')}",
                summary="Step execution failed and was marked failed.",
                tags=["ops", "step", "failed"],
                proposal_id=step.get("proposal_id"),
                mission_id=step.get("mission_id"),
                step_id=step["id"],
                meta={"step_kind": step.get("kind"), "error": str(e)},
            )
            summary.failed += 1
            logger.log_step_transition(step["id"], step.get("kind"), "failed", {"error": str(e)})

        sync_mission_status(store, step["mission_id"])

    return summary
