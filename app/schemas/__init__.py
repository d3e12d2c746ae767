"""
app/schemas package marker.
"""

from app.schemas.identity_ingestion import (
    FieldErrorResponse,
    IngestionErrorResponse,
    IngestionSummaryResponse,
    UrlIngestionRequest,
)
from app.schemas.users import (
    PaginationMeta,
    ProcessedFileResponse,
    UserListResponse,
    UserResponse,
    UserStatsResponse,
)

__all__ = [
    "FieldErrorResponse",
    "IngestionErrorResponse",
    "IngestionSummaryResponse",
    "PaginationMeta",
    "ProcessedFileResponse",
    "UrlIngestionRequest",
    "UserListResponse",
    "UserResponse",
    "UserStatsResponse",
]
