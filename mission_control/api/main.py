"""
Mission Control HTTP API - heartbeat trigger, dashboard, summaries, health and proposal approval.
"""

from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional

from .schemas import (
    ProposalCreateRequest,
    ProposalCreateResponse,
    ProposalDecisionRequest,
    ProposalDecisionResponse,
    HealthResponse,
    ErrorResponse,
)
from ..core.config import (
    VERSION,
    debug_enabled,
    get_row_store,
    get_store_provider,
    list_missing_store_env,
)
from ..core.errors import (
    ProposalNotFoundError,
    ProposalStateError,
    RowStoreError,
    StoreNotConfiguredError,
)
from ..core.rest import RowStore, utc_now_iso
from ..ops.dashboard import check_ops_db_health, list_ops_dashboard_data
from ..ops.heartbeat import run_ops_heartbeat
from ..ops.proposals import (
    approve_pending_proposal,
    create_proposal_and_maybe_auto_approve,
    reject_pending_proposal,
)
from ..ops.summaries import build_morning_briefing, build_standup_summary, parse_window_hours
from ..util.logging import logger

# Initialize the FastAPI application
app = FastAPI(
    title="Mission Control Ops API",
    version=VERSION,
    description="Ops kernel for an autonomous agent team: proposals, missions, steps and heartbeat",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

# Allow the dashboard frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error bodies of endpoints that need the row store
STORE_ERROR_RESPONSES = {
    502: {"model": ErrorResponse, "description": "Row store call failed"},
    503: {"model": ErrorResponse, "description": "Row store not configured"},
}


def get_store_dep() -> RowStore:
    """Resolve the configured row store or fail the request with 503."""
    store = get_row_store()
    if store is None:
        raise StoreNotConfiguredError(list_missing_store_env())
    return store


@app.exception_handler(StoreNotConfiguredError)
async def store_not_configured_handler(request: Request, exc: StoreNotConfiguredError):
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(error=str(exc), missing=exc.missing).model_dump(),
    )


@app.exception_handler(RowStoreError)
async def row_store_error_handler(request: Request, exc: RowStoreError):
    logger.log_operation("api.request", "store_error", {
        "path": request.url.path,
        "error": str(exc),
    })
    return JSONResponse(
        status_code=502,
        content=ErrorResponse(error=str(exc)).model_dump(exclude_none=True),
    )


def wants_text(request: Request, format: Optional[str]) -> bool:
    if format == "text":
        return True
    return "text/plain" in request.headers.get("accept", "")


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Check service health and row store reachability."""
    missing = list_missing_store_env()
    store = get_row_store()

    if store is None:
        return HealthResponse(
            ok=False,
            status="unconfigured",
            version=VERSION,
            timestamp=utc_now_iso(),
            store_provider=get_store_provider(),
            store_configured=False,
            missing=missing,
        )

    db_health = check_ops_db_health(store)
    return HealthResponse(
        ok=db_health["ok"],
        status="healthy" if db_health["ok"] else "degraded",
        version=VERSION,
        timestamp=utc_now_iso(),
        store_provider=get_store_provider(),
        store_configured=True,
        tables=db_health["tables"],
    )


@app.post("/heartbeat")
def heartbeat_endpoint():
    """Run one ops heartbeat. Returns an ok=false summary when the store is not configured."""
    summary = run_ops_heartbeat(get_row_store())
    return summary.to_dict()


@app.get("/dashboard", responses=STORE_ERROR_RESPONSES)
def dashboard_endpoint(store: RowStore = Depends(get_store_dep)):
    """Recent events, active steps and last heartbeat/summary events."""
    return {"ok": True, **list_ops_dashboard_data(store)}


@app.get("/summary/standup", responses=STORE_ERROR_RESPONSES)
def standup_endpoint(request: Request, hours: Optional[str] = Query(None),
                     format: Optional[str] = Query(None),
                     record: bool = Query(True),
                     store: RowStore = Depends(get_store_dep)):
    """Build a standup summary for the trailing window (1-72 hours)."""
    summary = build_standup_summary(store, parse_window_hours(hours), record_event=record)
    if wants_text(request, format):
        return PlainTextResponse(summary["text"])
    return summary


@app.get("/summary/briefing", responses=STORE_ERROR_RESPONSES)
def briefing_endpoint(request: Request, format: Optional[str] = Query(None),
                      record: bool = Query(True),
                      store: RowStore = Depends(get_store_dep)):
    """Build the morning briefing."""
    summary = build_morning_briefing(store, record_event=record)
    if wants_text(request, format):
        return PlainTextResponse(summary["text"])
    return summary


@app.post("/proposals", response_model=ProposalCreateResponse, responses=STORE_ERROR_RESPONSES)
def create_proposal_endpoint(request: ProposalCreateRequest, store: RowStore = Depends(get_store_dep)):
    """Submit a proposal; allow-listed work is approved and enqueued immediately."""
    result = create_proposal_and_maybe_auto_approve(store, request.to_draft())
    return ProposalCreateResponse(**result.to_dict())


@app.post("/proposals/{proposal_id}/approve", response_model=ProposalDecisionResponse,
          responses=STORE_ERROR_RESPONSES)
def approve_proposal_endpoint(proposal_id: str, decision: ProposalDecisionRequest,
                              store: RowStore = Depends(get_store_dep)):
    """Approve a pending proposal and enqueue its mission."""
    try:
        proposal, mission, steps = approve_pending_proposal(store, proposal_id, decision.approver)
    except ProposalNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ProposalStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return ProposalDecisionResponse(proposal=proposal, mission=mission, steps=steps)


@app.post("/proposals/{proposal_id}/reject", response_model=ProposalDecisionResponse,
          responses=STORE_ERROR_RESPONSES)
def reject_proposal_endpoint(proposal_id: str, decision: ProposalDecisionRequest,
                             store: RowStore = Depends(get_store_dep)):
    """Reject a pending proposal."""
    try:
        proposal = reject_pending_proposal(store, proposal_id, decision.approver, decision.reason)
    except ProposalNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ProposalStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return ProposalDecisionResponse(proposal=proposal)
