"""
app/domain/identity.py

Domain models used by the identity CSV ingestion flow.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence, Union

RawRecord = Union[Mapping[str, str], Sequence[str]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CandidateUser:
    """
    Unvalidated identity record produced from one CSV row.
    """

    full_name: str
    email: str
    phone: str
    source_file: str


@dataclass(frozen=True)
class FieldError:
    """
    One field-level validation failure.
    """

    field: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "reason": self.reason}


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Result of validating one candidate.

    Accepted candidates carry a trust score; rejected ones carry the
    field errors that failed the gate.
    """

    trust_score: float | None = None
    errors: tuple[FieldError, ...] = ()

    @property
    def accepted(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ScoredCandidate:
    """
    Accepted candidate paired with its trust score, ready for persistence.
    """

    candidate: CandidateUser
    trust_score: float


@dataclass(frozen=True)
class PersistedUser:
    """
    Identity record as stored; owned by the persistence layer.
    """

    id: uuid.UUID
    full_name: str
    email: str
    phone: str
    source_file: str
    trust_score: float
    ingested_at: datetime


@dataclass(frozen=True)
class IngestionError:
    """
    One row that could not be ingested.
    """

    row_number: int
    raw_data: Any
    error_message: str
    validation_errors: tuple[FieldError, ...] = ()
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        raw = self.raw_data
        if isinstance(raw, Mapping):
            raw = dict(raw)
        elif isinstance(raw, Sequence) and not isinstance(raw, str):
            raw = list(raw)
        return {
            "row_number": self.row_number,
            "raw_data": raw,
            "error_message": self.error_message,
            "validation_errors": [error.to_dict() for error in self.validation_errors],
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class IngestionSummary:
    """
    End-of-run ingestion summary.

    ``errors`` may be truncated for large files; the row counters never are.
    """

    total_rows: int
    successful_rows: int
    failed_rows: int
    filename: str
    processed_at: datetime = field(default_factory=_utcnow)
    errors: list[IngestionError] = field(default_factory=list)
    skipped: bool = False

    @classmethod
    def already_processed(cls, filename: str) -> IngestionSummary:
        return cls(
            total_rows=0,
            successful_rows=0,
            failed_rows=0,
            filename=filename,
            skipped=True,
        )


@dataclass(frozen=True)
class ProcessedFileRecord:
    """
    Dedup ledger entry for a consumed source file.
    """

    filename: str
    processed_at: datetime
