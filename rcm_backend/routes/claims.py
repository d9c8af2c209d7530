"""Claim workflow and claim query routes.

Claims enter through ``POST /api/claims`` (create and edit), then move through
corrections, confirmation and submission. Adjudication events arrive through
``POST /api/adjudications``. Domain errors are mapped to HTTP status codes by
the handlers registered in ``rcm_backend.app``.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from ..config import RATE_LIMIT_WRITE
from ..lifecycle import ClaimCoordinator
from ..rate_limit import limiter
from ..schemas import (
    AdjudicationPayload,
    ClaimPayload,
    ConfirmSubmissionRequest,
    CorrectionRequest,
    RejectSuggestionRequest,
    WriteOffRequest,
)
from .dependencies import get_coordinator

router = APIRouter(prefix="/api/claims", tags=["claims"])
adjudications_router = APIRouter(prefix="/api/adjudications", tags=["adjudications"])


@router.post("")
@limiter.limit(RATE_LIMIT_WRITE)
def submit_claim_record(
    request: Request,
    payload: ClaimPayload,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    """Create or edit a claim and validate it."""
    try:
        claim = payload.to_claim()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    claim = coordinator.on_claim_changed(claim)
    return claim.to_dict()


@router.get("/{claim_id}")
def get_claim(
    claim_id: str,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    return coordinator.get_claim(claim_id).to_dict()


@router.get("/{claim_id}/status")
def get_claim_status(
    claim_id: str,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    return coordinator.get_claim_status(claim_id).to_dict()


@router.get("/{claim_id}/issues")
def get_open_issues(
    claim_id: str,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    issues = coordinator.get_open_issues(claim_id)
    return {
        "claim_id": claim_id,
        "issues": [issue.to_dict() for issue in issues],
        "total": len(issues),
        "blocking": sum(1 for issue in issues if issue.is_blocking),
    }


@router.get("/{claim_id}/suggestions")
def get_suggestions(
    claim_id: str,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    suggestions = coordinator.get_suggestions(claim_id)
    return {
        "claim_id": claim_id,
        "suggestions": [suggestion.to_dict() for suggestion in suggestions],
    }


@router.post("/{claim_id}/corrections")
@limiter.limit(RATE_LIMIT_WRITE)
def run_corrections(
    request: Request,
    claim_id: str,
    body: CorrectionRequest | None = None,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    auto_apply = body.auto_apply if body else None
    suggestions = coordinator.correct(claim_id, auto_apply=auto_apply)
    status = coordinator.get_claim_status(claim_id)
    return {
        "claim_id": claim_id,
        "state": status.state.value,
        "score": status.score,
        "suggestions": [suggestion.to_dict() for suggestion in suggestions],
    }


@router.post("/{claim_id}/suggestions/{suggestion_id}/accept")
@limiter.limit(RATE_LIMIT_WRITE)
def accept_suggestion(
    request: Request,
    claim_id: str,
    suggestion_id: str,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    claim = coordinator.accept_suggestion(claim_id, suggestion_id)
    return claim.to_dict()


@router.post("/{claim_id}/suggestions/{suggestion_id}/reject")
@limiter.limit(RATE_LIMIT_WRITE)
def reject_suggestion(
    request: Request,
    claim_id: str,
    suggestion_id: str,
    body: RejectSuggestionRequest,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    suggestion = coordinator.reject_suggestion(claim_id, suggestion_id, body.reason)
    return suggestion.to_dict()


@router.post("/{claim_id}/confirm")
@limiter.limit(RATE_LIMIT_WRITE)
def confirm_submission(
    request: Request,
    claim_id: str,
    body: ConfirmSubmissionRequest,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    claim = coordinator.confirm_submission(claim_id, body.confirmed_by)
    return claim.to_dict()


@router.post("/{claim_id}/submit")
@limiter.limit(RATE_LIMIT_WRITE)
def submit_claim(
    request: Request,
    claim_id: str,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    receipt = coordinator.submit(claim_id)
    return receipt.to_dict()


@router.post("/{claim_id}/write-off")
@limiter.limit(RATE_LIMIT_WRITE)
def write_off_claim(
    request: Request,
    claim_id: str,
    body: WriteOffRequest,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    claim = coordinator.write_off(claim_id, body.reason)
    return claim.to_dict()


@router.post("/{claim_id}/clone")
@limiter.limit(RATE_LIMIT_WRITE)
def clone_denied_claim(
    request: Request,
    claim_id: str,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    clone = coordinator.clone_denied(claim_id)
    return clone.to_dict()


@router.post("/{claim_id}/archive")
@limiter.limit(RATE_LIMIT_WRITE)
def archive_claim(
    request: Request,
    claim_id: str,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    claim = coordinator.archive(claim_id)
    return {"claim_id": claim.claim_id, "state": claim.state.value, "archived": True}


@adjudications_router.post("")
@limiter.limit(RATE_LIMIT_WRITE)
def receive_adjudication(
    request: Request,
    payload: AdjudicationPayload,
    coordinator: ClaimCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    claim = coordinator.on_adjudication_event(payload.to_event())
    receivable = coordinator.ledger.get(claim.claim_id)
    return {
        "claim_id": claim.claim_id,
        "state": claim.state.value,
        "receivable": receivable.to_dict() if receivable else None,
    }
