"""
Ops kernel types - policy, drafts, results and the built-in defaults.
Rows read from the store stay plain dicts; payloads are schema-free by convention.
"""

import copy
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

JsonObject = Dict[str, Any]

PROPOSAL_STATUSES = ("pending", "approved", "rejected")
MISSION_STATUSES = ("queued", "running", "succeeded", "failed")
STEP_STATUSES = ("queued", "running", "succeeded", "failed")
RISK_LEVELS = ("low", "medium", "high")

KERNEL_AGENT = "ops_kernel"

# Tables
POLICY_TABLE = "ops_policy"
PROPOSALS_TABLE = "ops_proposals"
MISSIONS_TABLE = "ops_missions"
STEPS_TABLE = "ops_steps"
EVENTS_TABLE = "ops_events"
MEMORIES_TABLE = "agent_memories"

STEP_COLUMNS = "id,mission_id,proposal_id,kind,status,payload,attempts,last_error,created_at,started_at,finished_at"
EVENT_COLUMNS = "id,mission_id,step_id,proposal_id,agent,kind,title,summary,tags,meta,created_at"


@dataclass
class OpsPolicy:
    ops_kernel_enabled: bool
    auto_approve_step_kinds: List[str]
    daily_quotas: Dict[str, float]
    trigger_cooldowns_minutes: Dict[str, float]
    heartbeat_process_limit: float
    heartbeat_time_budget_ms: float

    def to_dict(self) -> JsonObject:
        return copy.deepcopy(asdict(self))

    def copy(self) -> 'OpsPolicy':
        return copy.deepcopy(self)


DEFAULT_OPS_POLICY = OpsPolicy(
    ops_kernel_enabled=True,
    auto_approve_step_kinds=["standup", "moltza_post", "outreach_check"],
    daily_quotas={
        "standup": 1,
        "moltza_post": 3,
        "outreach_check": 4,
    },
    trigger_cooldowns_minutes={
        "standup": 720,
        "moltza_post": 180,
        "outreach_check": 360,
    },
    heartbeat_process_limit=8,
    heartbeat_time_budget_ms=4000,
)

# Cooldown for a trigger that neither the policy nor the defaults mention
FALLBACK_COOLDOWN_MINUTES = 60


@dataclass(frozen=True)
class TriggerSpec:
    trigger: str
    title: str
    summary: str


DEFAULT_TRIGGERS = (
    TriggerSpec(
        trigger="standup",
        title="Draft daily standup update",
        summary="Prepare and queue a concise daily ops standup.",
    ),
    TriggerSpec(
        trigger="moltza_post",
        title="Draft Moltza social post",
        summary="Generate and queue a Moltza post for publishing review.",
    ),
    TriggerSpec(
        trigger="outreach_check",
        title="Run outreach health check",
        summary="Queue follow-up checks for outreach campaigns.",
    ),
)


@dataclass
class StepDraft:
    kind: str
    payload: JsonObject = field(default_factory=dict)

    def to_dict(self) -> JsonObject:
        return {"kind": self.kind, "payload": copy.deepcopy(self.payload)}

    @classmethod
    def from_dict(cls, data: JsonObject) -> 'StepDraft':
        payload = data.get("payload")
        return cls(kind=data["kind"], payload=dict(payload) if isinstance(payload, dict) else {})


@dataclass
class ProposalDraft:
    trigger: str
    title: str
    steps: List[StepDraft] = field(default_factory=list)
    agent: str = KERNEL_AGENT
    risk_level: str = "low"
    payload: JsonObject = field(default_factory=dict)

    def __post_init__(self):
        if self.risk_level not in RISK_LEVELS:
            raise ValueError(f"Invalid risk level: {self.risk_level}")


@dataclass
class QuotaCheckResult:
    allowed: bool
    reason: Optional[str] = None


@dataclass
class CreateProposalResult:
    proposal: JsonObject
    mission: Optional[JsonObject]
    steps: List[JsonObject]
    auto_approved: bool
    rejected: bool
    reason: Optional[str] = None

    def to_dict(self) -> JsonObject:
        return asdict(self)


@dataclass
class ProcessQueuedSummary:
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped_by_budget: bool = False

    def to_dict(self) -> JsonObject:
        return asdict(self)


@dataclass
class TriggerEvaluationResult:
    trigger: str
    created: bool
    auto_approved: bool
    status: str  # pending, approved, rejected, skipped
    reason: Optional[str] = None
    proposal_id: Optional[str] = None


@dataclass
class QueueDepth:
    queued: int = 0
    running: int = 0

    def to_dict(self) -> JsonObject:
        return asdict(self)


@dataclass
class OpsHeartbeatSummary:
    ok: bool
    kernel_enabled: bool
    policy: OpsPolicy
    stale_recovered: int
    triggers: List[TriggerEvaluationResult]
    processed: ProcessQueuedSummary
    queue_depth: QueueDepth
    generated_at: str

    def to_dict(self) -> JsonObject:
        return asdict(self)
