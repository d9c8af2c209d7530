"""Pydantic schemas for API requests."""

from .claims import (
    AdjudicationPayload,
    ClaimPayload,
    ConfirmSubmissionRequest,
    CorrectionRequest,
    RejectSuggestionRequest,
    ServiceLinePayload,
    WriteOffRequest,
)

__all__ = [
    "AdjudicationPayload",
    "ClaimPayload",
    "ConfirmSubmissionRequest",
    "CorrectionRequest",
    "RejectSuggestionRequest",
    "ServiceLinePayload",
    "WriteOffRequest",
]
