"""
app/api/routers/identity_ingestion.py

Identity CSV ingestion HTTP endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile, status

from app.api.dependencies import get_csv_upload
from app.schemas.identity_ingestion import IngestionSummaryResponse, UrlIngestionRequest
from app.services.identity_ingestion_service import (
    CSVParseError,
    IdentityIngestionService,
    get_identity_ingestion_service,
)
from app.services.source_fetcher import SourceFetchError
from app.validators.mapping_validator import ColumnMappingError, ColumnMappingValidator
from db.repositories.errors import TransientStoreError

router = APIRouter(prefix="/ingest", tags=["ingestion"])


@router.post("/upload", response_model=IngestionSummaryResponse)
def upload_csv(
    file: UploadFile = Depends(get_csv_upload),
    mapping: str | None = Form(
        default=None,
        description='Optional JSON column mapping for headerless files, e.g. {"fullName": 0, "email": 1, "phone": 2}',
    ),
    ingestion_service: IdentityIngestionService = Depends(get_identity_ingestion_service),
) -> IngestionSummaryResponse:
    """
    Ingest one uploaded CSV file of identity records.
    """

    try:
        column_mapping = ColumnMappingValidator().parse(mapping) if mapping else None
        summary = ingestion_service.ingest_from_upload(
            file.file,
            file.filename or "upload.csv",
            mapping=column_mapping,
        )
    except ColumnMappingError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except CSVParseError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except TransientStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity store is unavailable.",
        ) from exc
    finally:
        file.file.close()

    return IngestionSummaryResponse.from_domain(summary)


@router.post("/url", response_model=IngestionSummaryResponse)
def ingest_from_url(
    body: UrlIngestionRequest,
    ingestion_service: IdentityIngestionService = Depends(get_identity_ingestion_service),
) -> IngestionSummaryResponse:
    """
    Fetch a CSV file from a URL and ingest it.
    """

    try:
        summary = ingestion_service.ingest_from_url(str(body.url), timeout_ms=body.timeout_ms)
    except SourceFetchError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    except CSVParseError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except TransientStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity store is unavailable.",
        ) from exc

    return IngestionSummaryResponse.from_domain(summary)
