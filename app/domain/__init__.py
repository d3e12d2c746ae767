"""
app/domain package marker.
"""

from app.domain.identity import (
    CandidateUser,
    FieldError,
    IngestionError,
    IngestionSummary,
    PersistedUser,
    ProcessedFileRecord,
    ScoredCandidate,
    ValidationOutcome,
)

__all__ = [
    "CandidateUser",
    "FieldError",
    "IngestionError",
    "IngestionSummary",
    "PersistedUser",
    "ProcessedFileRecord",
    "ScoredCandidate",
    "ValidationOutcome",
]
