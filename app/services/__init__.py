"""
app/services package marker.
"""

from app.services.batch_writer import BatchAccumulator, BatchEntry, RetryingBatchWriter
from app.services.error_sink import ErrorSink, get_error_sink
from app.services.identity_ingestion_service import (
    CSVParseError,
    IdentityIngestionService,
    IngestionState,
    get_identity_ingestion_service,
)
from app.services.source_fetcher import SourceFetcher, SourceFetchError

__all__ = [
    "BatchAccumulator",
    "BatchEntry",
    "CSVParseError",
    "ErrorSink",
    "IdentityIngestionService",
    "IngestionState",
    "RetryingBatchWriter",
    "SourceFetchError",
    "SourceFetcher",
    "get_error_sink",
    "get_identity_ingestion_service",
]
