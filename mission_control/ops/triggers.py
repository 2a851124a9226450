"""
Trigger evaluator - turns each built-in trigger into a single-step proposal unless its cooldown is active.
"""

from typing import List, Sequence

from ..core.rest import RowStore
from ..util.logging import logger
from .proposals import create_proposal_and_maybe_auto_approve
from .quota import count_recent_proposals
from .schema import (
    DEFAULT_OPS_POLICY,
    DEFAULT_TRIGGERS,
    FALLBACK_COOLDOWN_MINUTES,
    OpsPolicy,
    ProposalDraft,
    StepDraft,
    TriggerEvaluationResult,
    TriggerSpec,
)


def cooldown_minutes_for(trigger: str, policy: OpsPolicy, defaults: OpsPolicy = DEFAULT_OPS_POLICY) -> float:
    if trigger in policy.trigger_cooldowns_minutes:
        return policy.trigger_cooldowns_minutes[trigger]
    return defaults.trigger_cooldowns_minutes.get(trigger, FALLBACK_COOLDOWN_MINUTES)


def build_trigger_draft(spec: TriggerSpec) -> ProposalDraft:
    return ProposalDraft(
        trigger=spec.trigger,
        title=spec.title,
        risk_level="low",
        payload={"source": "heartbeat"},
        steps=[
            StepDraft(
                kind=spec.trigger,
                payload={"trigger": spec.trigger, "summary": spec.summary},
            )
        ],
    )


def evaluate_triggers(store: RowStore, policy: OpsPolicy,
                      triggers: Sequence[TriggerSpec] = DEFAULT_TRIGGERS,
                      defaults: OpsPolicy = DEFAULT_OPS_POLICY) -> List[TriggerEvaluationResult]:
    """Evaluate every trigger once, in order. Store failures abort the remaining triggers."""
    results = []

    for spec in triggers:
        cooldown = cooldown_minutes_for(spec.trigger, policy, defaults)
        recent = count_recent_proposals(store, spec.trigger, cooldown)

        if recent > 0:
            reason = f"Cooldown active ({cooldown:g}m)."
            results.append(TriggerEvaluationResult(
                trigger=spec.trigger,
                created=False,
                auto_approved=False,
                status="skipped",
                reason=reason,
            ))
            logger.log_trigger(spec.trigger, "skipped", reason)
            continue

        created = create_proposal_and_maybe_auto_approve(store, build_trigger_draft(spec), policy)

        results.append(TriggerEvaluationResult(
            trigger=spec.trigger,
            created=True,
            auto_approved=created.auto_approved,
            status=created.proposal.get("status"),
            reason=created.reason,
            proposal_id=created.proposal.get("id"),
        ))
        logger.log_trigger(spec.trigger, created.proposal.get("status"), created.reason)

    return results
