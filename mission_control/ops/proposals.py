"""
Proposal engine - creates proposals, applies the quota gate, auto-approves allow-listed work
and enqueues a mission with its steps for every approved proposal.
"""

import logging
from typing import List, Optional, Tuple

from ..core.errors import ProposalNotFoundError, ProposalStateError, RowStoreError
from ..core.rest import RowStore, eq
from ..util.logging import logger
from .events import create_event
from .policy import load_policy
from .quota import check_daily_quotas
from .schema import (
    KERNEL_AGENT,
    MISSIONS_TABLE,
    PROPOSALS_TABLE,
    STEPS_TABLE,
    CreateProposalResult,
    JsonObject,
    OpsPolicy,
    ProposalDraft,
    StepDraft,
)


def _proposal_row(draft: ProposalDraft, status: str, reason_rejected: str = None) -> JsonObject:
    payload = dict(draft.payload or {})
    payload["steps"] = [step.to_dict() for step in draft.steps]

    return {
        "trigger": draft.trigger,
        "agent": draft.agent or KERNEL_AGENT,
        "title": draft.title,
        "status": status,
        "risk_level": draft.risk_level or "low",
        "reason_rejected": reason_rejected,
        "payload": payload,
    }


def should_auto_approve(steps: List[StepDraft], policy: OpsPolicy) -> bool:
    """Auto-approve only a non-empty batch whose every kind is allow-listed."""
    allowed_kinds = set(policy.auto_approve_step_kinds)
    return len(steps) > 0 and all(step.kind in allowed_kinds for step in steps)


def step_drafts_from_payload(proposal: JsonObject) -> List[StepDraft]:
    """Recover the step drafts embedded in a proposal's payload."""
    payload = proposal.get("payload") or {}
    drafts = []
    for entry in payload.get("steps") or []:
        if isinstance(entry, dict) and isinstance(entry.get("kind"), str):
            drafts.append(StepDraft.from_dict(entry))
    return drafts


def _enqueue_mission(store: RowStore, proposal: JsonObject,
                     steps: List[StepDraft]) -> Tuple[JsonObject, List[JsonObject]]:
    mission = store.insert_rows(MISSIONS_TABLE, [
        {
            "proposal_id": proposal["id"],
            "status": "queued",
            "created_by": KERNEL_AGENT,
        }
    ])[0]

    step_rows = store.insert_rows(STEPS_TABLE, [
        {
            "mission_id": mission["id"],
            "proposal_id": proposal["id"],
            "kind": step.kind,
            "status": "queued",
            "payload": dict(step.payload or {}),
            "attempts": 0,
        }
        for step in steps
    ])

    return mission, step_rows


def _record_approval(store: RowStore, proposal: JsonObject, mission: JsonObject,
                     step_rows: List[JsonObject], title: str, approver: str = None):
    meta = {
        "trigger": proposal.get("trigger"),
        "step_kinds": [step.get("kind") for step in step_rows],
    }
    if approver:
        meta["approver"] = approver

    create_event(
        store,
        kind="proposal_approved",
        title=title,
        summary=f"{proposal.get('title')} approved and enqueued with {len(step_rows)} step(s).",
        tags=["ops", "proposal", "approved"],
        proposal_id=proposal["id"],
        mission_id=mission["id"],
        meta=meta,
    )
    logger.log_proposal(proposal["id"], proposal.get("trigger"), "approved", {
        "mission_id": mission["id"],
        "steps": len(step_rows),
        "approver": approver or KERNEL_AGENT,
    })


def approve_proposal(store: RowStore, proposal: JsonObject,
                     steps: List[StepDraft]) -> Tuple[JsonObject, List[JsonObject]]:
    """Create the mission and steps for a pending proposal, then mark it approved."""
    mission, step_rows = _enqueue_mission(store, proposal, steps)

    store.patch_rows(
        PROPOSALS_TABLE,
        {"status": "approved", "reason_rejected": None},
        {"id": eq(proposal["id"])},
    )

    _record_approval(store, proposal, mission, step_rows, title="Proposal auto-approved")
    return mission, step_rows


def create_proposal_and_maybe_auto_approve(store: RowStore, draft: ProposalDraft,
                                           policy: Optional[OpsPolicy] = None) -> CreateProposalResult:
    """
    Submit a proposal draft.

    Over-quota drafts are stored as rejected. Otherwise the proposal is stored as
    pending and, when every step kind is allow-listed, approved and enqueued
    immediately. Store failures propagate to the caller.
    """
    policy = policy or load_policy(store)
    quota_result = check_daily_quotas(store, draft.steps, policy)

    if not quota_result.allowed:
        reason = quota_result.reason or "Daily quota exceeded"
        rejected = store.insert_rows(PROPOSALS_TABLE, [
            _proposal_row(draft, "rejected", reason_rejected=reason)
        ])[0]

        create_event(
            store,
            kind="proposal_rejected",
            title="Proposal rejected by quota gate",
            summary=quota_result.reason or "Daily quota exceeded.",
            tags=["ops", "proposal", "quota"],
            proposal_id=rejected["id"],
            meta={"trigger": draft.trigger},
        )
        logger.log_proposal(rejected["id"], draft.trigger, "rejected", {"reason": reason})

        return CreateProposalResult(
            proposal=rejected,
            mission=None,
            steps=[],
            auto_approved=False,
            rejected=True,
            reason=quota_result.reason,
        )

    proposal = store.insert_rows(PROPOSALS_TABLE, [_proposal_row(draft, "pending")])[0]

    if not should_auto_approve(draft.steps, policy):
        create_event(
            store,
            kind="proposal_created",
            title="Proposal queued for approval",
            summary=f"{proposal.get('title')} is waiting for manual approval.",
            tags=["ops", "proposal", "pending"],
            proposal_id=proposal["id"],
            meta={"trigger": draft.trigger},
        )
        logger.log_proposal(proposal["id"], draft.trigger, "pending")

        return CreateProposalResult(
            proposal=proposal,
            mission=None,
            steps=[],
            auto_approved=False,
            rejected=False,
        )

    mission, step_rows = approve_proposal(store, proposal, draft.steps)

    approved = dict(proposal)
    approved.update({"status": "approved", "reason_rejected": None})
    return CreateProposalResult(
        proposal=approved,
        mission=mission,
        steps=step_rows,
        auto_approved=True,
        rejected=False,
    )


def get_proposal(store: RowStore, proposal_id: str) -> JsonObject:
    rows = store.select_rows(PROPOSALS_TABLE, {"id": eq(proposal_id), "limit": 1})
    if not rows:
        raise ProposalNotFoundError(f"Proposal not found: {proposal_id}")
    return rows[0]


def approve_pending_proposal(store: RowStore, proposal_id: str,
                             approver: str) -> Tuple[JsonObject, JsonObject, List[JsonObject]]:
    """
    Approve a pending proposal out of band.

    The pending->approved transition is claimed with a conditional patch before any
    mission is created, so two approvers cannot enqueue the same proposal twice.
    Proposals without step drafts cannot be approved and stay pending.

    Returns:
        (proposal, mission, steps) as stored
    """
    proposal = get_proposal(store, proposal_id)
    if proposal.get("status") != "pending":
        raise ProposalStateError(f"Proposal {proposal_id} is {proposal.get('status')}, not pending")

    steps = step_drafts_from_payload(proposal)
    if not steps:
        raise ProposalStateError(f"Proposal {proposal_id} has no steps to enqueue")

    claimed = store.patch_rows(
        PROPOSALS_TABLE,
        {"status": "approved", "reason_rejected": None},
        {"id": eq(proposal_id), "status": eq("pending")},
    )
    if not claimed:
        raise ProposalStateError(f"Proposal {proposal_id} was already decided")

    try:
        mission, step_rows = _enqueue_mission(store, claimed[0], steps)
    except RowStoreError as e:
        # proposal stays approved with no mission; needs manual repair
        logger.log_operation("proposal.approve", "stranded", {
            "proposal_id": proposal_id,
            "approver": approver,
            "error": str(e),
        }, level=logging.ERROR)
        raise

    _record_approval(store, claimed[0], mission, step_rows,
                     title="Proposal approved", approver=approver)
    return claimed[0], mission, step_rows


def reject_pending_proposal(store: RowStore, proposal_id: str, approver: str,
                            reason: str = "") -> JsonObject:
    """Reject a pending proposal out of band."""
    proposal = get_proposal(store, proposal_id)
    reason_rejected = reason or f"Rejected by {approver}"

    rejected = store.patch_rows(
        PROPOSALS_TABLE,
        {"status": "rejected", "reason_rejected": reason_rejected},
        {"id": eq(proposal_id), "status": eq("pending")},
    )
    if not rejected:
        raise ProposalStateError(f"Proposal {proposal_id} is {proposal.get('status')}, not pending")

    create_event(
        store,
        kind="proposal_rejected",
        title="Proposal rejected",
        summary=f"{proposal.get('title')} rejected by {approver}: {reason_rejected}",
        tags=["ops", "proposal", "rejected"],
        proposal_id=proposal_id,
        meta={"trigger": proposal.get("trigger"), "approver": approver},
    )
    logger.log_proposal(proposal_id, proposal.get("trigger"), "rejected", {
        "approver": approver,
        "reason": reason_rejected,
    })
    return rejected[0]
