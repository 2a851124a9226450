"""
Ops heartbeat - one full kernel pass: stale recovery, trigger evaluation, step processing
and a summary event. Invoked periodically by an external scheduler.
"""

import math
import time
from typing import Optional, Sequence

from ..core.rest import RowStore, eq, utc_now_iso
from ..util.logging import logger
from .events import create_event
from .executor import StepExecutor, process_queued_steps
from .policy import bootstrap_policy_defaults
from .recovery import recover_stale_running_steps
from .schema import (
    DEFAULT_OPS_POLICY,
    DEFAULT_TRIGGERS,
    STEPS_TABLE,
    OpsHeartbeatSummary,
    OpsPolicy,
    ProcessQueuedSummary,
    QueueDepth,
    TriggerSpec,
)
from .triggers import evaluate_triggers

MIN_PROCESS_LIMIT = 1
MIN_TIME_BUDGET_MS = 500


def count_queue_depth(store: RowStore) -> QueueDepth:
    return QueueDepth(
        queued=store.count_rows(STEPS_TABLE, {"status": eq("queued")}),
        running=store.count_rows(STEPS_TABLE, {"status": eq("running")}),
    )


def heartbeat_limits(policy: OpsPolicy):
    """Floor the policy's batch limit and time budget and apply their minimums."""
    limit = max(MIN_PROCESS_LIMIT, math.floor(policy.heartbeat_process_limit))
    budget_ms = max(MIN_TIME_BUDGET_MS, math.floor(policy.heartbeat_time_budget_ms))
    return limit, budget_ms


def run_ops_heartbeat(store: Optional[RowStore],
                      triggers: Sequence[TriggerSpec] = DEFAULT_TRIGGERS,
                      defaults: OpsPolicy = DEFAULT_OPS_POLICY,
                      executor: StepExecutor = None) -> OpsHeartbeatSummary:
    """
    Run one heartbeat.

    Phases run strictly in order: recovery, triggers, step processing. Freshly
    auto-approved steps join the queued pool before processing fetches its batch.

    Args:
        store: Row store, or None when the store is not configured
        triggers: Triggers to evaluate
        defaults: Policy defaults used for seeding and fallback
        executor: Step executor (defaults to recording an event per step)

    Returns:
        OpsHeartbeatSummary; `ok` is False only when no store is configured
    """
    if store is None:
        logger.log_operation("heartbeat", "skipped", {"reason": "row store not configured"})
        return OpsHeartbeatSummary(
            ok=False,
            kernel_enabled=False,
            policy=defaults.copy(),
            stale_recovered=0,
            triggers=[],
            processed=ProcessQueuedSummary(),
            queue_depth=QueueDepth(),
            generated_at=utc_now_iso(),
        )

    start_time = time.monotonic()
    policy = bootstrap_policy_defaults(store, defaults)

    if not policy.ops_kernel_enabled:
        summary = OpsHeartbeatSummary(
            ok=True,
            kernel_enabled=False,
            policy=policy,
            stale_recovered=0,
            triggers=[],
            processed=ProcessQueuedSummary(),
            queue_depth=count_queue_depth(store),
            generated_at=utc_now_iso(),
        )

        create_event(
            store,
            kind="heartbeat",
            title="Ops heartbeat executed",
            summary="Heartbeat completed while ops kernel is disabled.",
            tags=["ops", "heartbeat"],
            meta={
                "kernel_enabled": summary.kernel_enabled,
                "queue_depth": summary.queue_depth.to_dict(),
            },
        )
        logger.log_heartbeat(start_time, time.monotonic(), "disabled")
        return summary

    stale_recovered = recover_stale_running_steps(store)
    trigger_results = evaluate_triggers(store, policy, triggers, defaults)
    limit, budget_ms = heartbeat_limits(policy)
    processed = process_queued_steps(store, limit, budget_ms, executor)

    summary = OpsHeartbeatSummary(
        ok=True,
        kernel_enabled=True,
        policy=policy,
        stale_recovered=stale_recovered,
        triggers=trigger_results,
        processed=processed,
        queue_depth=count_queue_depth(store),
        generated_at=utc_now_iso(),
    )

    create_event(
        store,
        kind="heartbeat",
        title="Ops heartbeat executed",
        summary="Heartbeat evaluated triggers, recovered stale steps, and processed queued work.",
        tags=["ops", "heartbeat"],
        meta={
            "kernel_enabled": summary.kernel_enabled,
            "stale_recovered": summary.stale_recovered,
            "queue_depth": summary.queue_depth.to_dict(),
            "processed": summary.processed.to_dict(),
            "trigger_statuses": [
                {"trigger": t.trigger, "status": t.status, "created": t.created}
                for t in summary.triggers
            ],
        },
    )

    logger.log_heartbeat(start_time, time.monotonic(), "success", {
        "stale_recovered": stale_recovered,
        "attempted": processed.attempted,
        "succeeded": processed.succeeded,
        "failed": processed.failed,
        "queued": summary.queue_depth.queued,
    })
    return summary
