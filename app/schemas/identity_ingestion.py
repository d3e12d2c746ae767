"""
app/schemas/identity_ingestion.py

Request and response schemas for identity ingestion endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, HttpUrl

from app.domain.identity import IngestionError, IngestionSummary


class FieldErrorResponse(BaseModel):
    field: str
    reason: str


class IngestionErrorResponse(BaseModel):
    """
    API response model for one failed row.
    """

    row_number: int = Field(..., ge=1)
    raw_data: Any = None
    error_message: str
    validation_errors: list[FieldErrorResponse] = Field(default_factory=list)
    timestamp: datetime

    @classmethod
    def from_domain(cls, error: IngestionError) -> IngestionErrorResponse:
        return cls(
            row_number=error.row_number,
            raw_data=error.raw_data,
            error_message=error.error_message,
            validation_errors=[
                FieldErrorResponse(field=item.field, reason=item.reason)
                for item in error.validation_errors
            ],
            timestamp=error.timestamp,
        )


class IngestionSummaryResponse(BaseModel):
    """
    API response model for an ingestion run.
    """

    total_rows: int = Field(..., ge=0)
    successful_rows: int = Field(..., ge=0)
    failed_rows: int = Field(..., ge=0)
    filename: str
    processed_at: datetime
    skipped: bool = False
    errors: list[IngestionErrorResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, summary: IngestionSummary) -> IngestionSummaryResponse:
        return cls(
            total_rows=summary.total_rows,
            successful_rows=summary.successful_rows,
            failed_rows=summary.failed_rows,
            filename=summary.filename,
            processed_at=summary.processed_at,
            skipped=summary.skipped,
            errors=[IngestionErrorResponse.from_domain(error) for error in summary.errors],
        )


class UrlIngestionRequest(BaseModel):
    url: HttpUrl
    timeout_ms: int | None = Field(default=None, ge=1)
