"""API routers."""

from .ar import router as ar_router
from .audit import router as audit_router
from .claims import adjudications_router
from .claims import router as claims_router

__all__ = ["ar_router", "audit_router", "adjudications_router", "claims_router"]
