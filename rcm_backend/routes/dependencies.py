"""Request-scoped access to the objects the app was built with."""

from __future__ import annotations

from fastapi import HTTPException, Request

from ..audit import AuditLog
from ..lifecycle import ClaimCoordinator


def get_coordinator(request: Request) -> ClaimCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Claim coordinator not initialized")
    return coordinator


def get_audit_log(request: Request) -> AuditLog:
    audit = getattr(request.app.state, "audit", None)
    if audit is None:
        raise HTTPException(status_code=503, detail="Audit log not initialized")
    return audit
