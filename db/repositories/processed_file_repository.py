"""
Repository for the processed-file dedup ledger.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.processed_file import ProcessedFile


class ProcessedFileRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_filename(self, filename: str) -> ProcessedFile | None:
        stmt = select(ProcessedFile).where(ProcessedFile.filename == filename)
        return self._session.scalars(stmt).first()

    def create(self, filename: str) -> ProcessedFile:
        record = ProcessedFile(filename=filename)
        self._session.add(record)
        self._session.flush()
        return record

    def list_all(self) -> list[ProcessedFile]:
        stmt = select(ProcessedFile).order_by(ProcessedFile.processed_at.desc())
        return list(self._session.scalars(stmt).all())
