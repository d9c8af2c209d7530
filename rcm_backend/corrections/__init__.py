"""Auto-correction engine for validation issues."""

from .engine import CorrectionEngine, FeedbackHook
from .fixers import DEFAULT_FIXERS, normalize_icd10, normalize_procedure_code
from .models import (
    CorrectionPolicy,
    CorrectionSuggestion,
    FieldEdit,
    FixMode,
    ProposedFix,
    SuggestionStatus,
)

__all__ = [
    "CorrectionEngine",
    "CorrectionPolicy",
    "CorrectionSuggestion",
    "DEFAULT_FIXERS",
    "FeedbackHook",
    "FieldEdit",
    "FixMode",
    "ProposedFix",
    "SuggestionStatus",
    "normalize_icd10",
    "normalize_procedure_code",
]
