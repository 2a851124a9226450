"""
Quota and cooldown gate.
Daily quotas cap steps per kind per UTC day; cooldowns cap proposals per trigger per window.
"""

from collections import OrderedDict
from datetime import datetime
from typing import List

from ..core.rest import RowStore, eq, gte, lt, since_iso, utc_day_bounds
from .schema import PROPOSALS_TABLE, STEPS_TABLE, OpsPolicy, QuotaCheckResult, StepDraft


def _format_number(value) -> str:
    return f"{value:g}" if isinstance(value, float) else str(value)


def check_daily_quotas(store: RowStore, steps: List[StepDraft], policy: OpsPolicy,
                       now: datetime = None) -> QuotaCheckResult:
    """
    Check a batch of step drafts against the policy's daily quotas.

    All-or-nothing: one over-quota kind rejects the whole batch. Kinds without a
    configured quota are unconstrained.
    """
    requested_by_kind = OrderedDict()
    for step in steps:
        requested_by_kind[step.kind] = requested_by_kind.get(step.kind, 0) + 1

    if not requested_by_kind:
        return QuotaCheckResult(allowed=True)

    start, end = utc_day_bounds(now)
    for kind, requested in requested_by_kind.items():
        quota = policy.daily_quotas.get(kind)
        if quota is None:
            continue

        used_today = store.count_rows(STEPS_TABLE, {
            "kind": eq(kind),
            "created_at": [gte(start), lt(end)],
        })

        if used_today + requested > quota:
            return QuotaCheckResult(
                allowed=False,
                reason=(
                    f"Daily quota exceeded for {kind}: "
                    f"{used_today}+{requested} > {_format_number(quota)}"
                ),
            )

    return QuotaCheckResult(allowed=True)


def count_recent_proposals(store: RowStore, trigger: str, minutes: float, now: datetime = None) -> int:
    """Count proposals for `trigger` created within the last `minutes`."""
    return store.count_rows(PROPOSALS_TABLE, {
        "trigger": eq(trigger),
        "created_at": gte(since_iso(minutes=minutes, now=now)),
    })
