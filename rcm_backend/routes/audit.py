"""Audit trail routes.

Security Note:
    These endpoints should be protected by authentication middleware in
    production; access to the audit trail belongs to billing supervisors and
    compliance staff.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from ..audit import AuditAction, AuditLog
from .dependencies import get_audit_log

router = APIRouter(prefix="/api/audit", tags=["audit"])


@router.get("")
def list_audit_entries(
    resource_id: str | None = Query(default=None, description="Filter by claim or suggestion ID"),
    action: str | None = Query(default=None, description="Filter by action type"),
    status: str | None = Query(default=None, description="Filter by status (success/error)"),
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    audit: AuditLog = Depends(get_audit_log),
) -> dict[str, Any]:
    """List audit entries with filtering and pagination."""
    entries, total = audit.entries(
        resource_id=resource_id,
        action=action,
        status=status,
        limit=limit,
        offset=offset,
    )
    return {
        "entries": [entry.to_dict() for entry in entries],
        "total": total,
        "limit": limit,
        "offset": offset,
        "filters_applied": {"resource_id": resource_id, "action": action, "status": status},
    }


@router.get("/actions")
def list_audit_actions() -> dict[str, Any]:
    """List all available audit action types."""
    return {
        "actions": [action.value for action in AuditAction],
        "categories": {
            "claim": [a.value for a in AuditAction if a.value.startswith("claim.")],
            "correction": [a.value for a in AuditAction if a.value.startswith("correction.")],
        },
    }
