"""
app/api/routers/processed_files_router.py

Read endpoint for the processed-file ledger.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.repositories.identity_store import SQLAlchemyIdentityStore, get_identity_store
from app.schemas.users import ProcessedFileResponse

router = APIRouter(prefix="/processed-files", tags=["processed-files"])


@router.get("", response_model=list[ProcessedFileResponse])
def list_processed_files(
    store: SQLAlchemyIdentityStore = Depends(get_identity_store),
) -> list[ProcessedFileResponse]:
    """
    Files already ingested, newest first.
    """

    return [ProcessedFileResponse.model_validate(record) for record in store.list_processed_files()]
