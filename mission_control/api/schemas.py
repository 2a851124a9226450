"""
Request/response models for the Mission Control HTTP API.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any

from ..ops.schema import RISK_LEVELS, ProposalDraft, StepDraft


class StepDraftModel(BaseModel):
    kind: str
    payload: Dict[str, Any] = {}

    @field_validator('kind')
    @classmethod
    def kind_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('kind cannot be empty')
        return v


class ProposalCreateRequest(BaseModel):
    trigger: str
    title: str
    steps: List[StepDraftModel]
    agent: Optional[str] = None
    risk_level: str = "low"
    payload: Dict[str, Any] = {}

    @field_validator('trigger', 'title')
    @classmethod
    def must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('value cannot be empty')
        return v

    @field_validator('risk_level')
    @classmethod
    def risk_level_must_be_valid(cls, v):
        if v not in RISK_LEVELS:
            raise ValueError(f'risk_level must be one of: {list(RISK_LEVELS)}')
        return v

    def to_draft(self) -> ProposalDraft:
        fields = {}
        if self.agent:
            fields["agent"] = self.agent
        return ProposalDraft(
            trigger=self.trigger,
            title=self.title,
            steps=[StepDraft(kind=step.kind, payload=dict(step.payload)) for step in self.steps],
            risk_level=self.risk_level,
            payload=dict(self.payload),
            **fields,
        )


class ProposalDecisionRequest(BaseModel):
    approver: str
    reason: str = ""

    @field_validator('approver')
    @classmethod
    def approver_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('approver cannot be empty')
        return v


class ProposalCreateResponse(BaseModel):
    ok: bool = True
    proposal: Dict[str, Any]
    mission: Optional[Dict[str, Any]] = None
    steps: List[Dict[str, Any]] = []
    auto_approved: bool
    rejected: bool
    reason: Optional[str] = None


class ProposalDecisionResponse(BaseModel):
    ok: bool = True
    proposal: Dict[str, Any]
    mission: Optional[Dict[str, Any]] = None
    steps: List[Dict[str, Any]] = []


class TableHealth(BaseModel):
    reachable: bool
    row_count: int


class HealthResponse(BaseModel):
    ok: bool
    status: str  # healthy, degraded, unconfigured
    version: str
    timestamp: str
    store_provider: str
    store_configured: bool
    missing: List[str] = []
    tables: Dict[str, TableHealth] = {}


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    missing: Optional[List[str]] = None
