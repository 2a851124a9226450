"""
Ops kernel - proposals, missions and steps driven by a periodic heartbeat over a row store.
"""

# Package initialization for ops module
from .schema import (
    DEFAULT_OPS_POLICY,
    DEFAULT_TRIGGERS,
    OpsPolicy,
    ProposalDraft,
    StepDraft,
    TriggerSpec,
    CreateProposalResult,
    OpsHeartbeatSummary,
)
from .policy import bootstrap_policy_defaults, load_policy
from .quota import check_daily_quotas
from .proposals import (
    create_proposal_and_maybe_auto_approve,
    approve_pending_proposal,
    reject_pending_proposal,
)
from .missions import derive_mission_status, sync_mission_status
from .executor import StepExecutor, EventRecordingExecutor, process_queued_steps
from .recovery import recover_stale_running_steps
from .triggers import evaluate_triggers
from .heartbeat import run_ops_heartbeat
from .dashboard import list_ops_dashboard_data, check_ops_db_health
from .summaries import build_standup_summary, build_morning_briefing, parse_window_hours

__all__ = [
    'DEFAULT_OPS_POLICY',
    'DEFAULT_TRIGGERS',
    'OpsPolicy',
    'ProposalDraft',
    'StepDraft',
    'TriggerSpec',
    'CreateProposalResult',
    'OpsHeartbeatSummary',
    'bootstrap_policy_defaults',
    'load_policy',
    'check_daily_quotas',
    'create_proposal_and_maybe_auto_approve',
    'approve_pending_proposal',
    'reject_pending_proposal',
    'derive_mission_status',
    'sync_mission_status',
    'StepExecutor',
    'EventRecordingExecutor',
    'process_queued_steps',
    'recover_stale_running_steps',
    'evaluate_triggers',
    'run_ops_heartbeat',
    'list_ops_dashboard_data',
    'check_ops_db_health',
    'build_standup_summary',
    'build_morning_briefing',
    'parse_window_hours'
]
