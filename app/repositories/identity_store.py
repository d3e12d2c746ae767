"""
app/repositories/identity_store.py

Persistence interface consumed by the ingestion pipeline, plus its
SQLAlchemy implementation.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from functools import lru_cache
from typing import Protocol

from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.domain.identity import PersistedUser, ProcessedFileRecord, ScoredCandidate
from db.models.processed_file import ProcessedFile
from db.models.user import User
from db.repositories.errors import (
    DuplicateFileError,
    DuplicateKeyError,
    InvalidRecordError,
    TransientStoreError,
)
from db.repositories.processed_file_repository import ProcessedFileRepository
from db.repositories.user_repository import UserRepository, UserStats


class IdentityStore(Protocol):
    def create_one(self, entry: ScoredCandidate) -> PersistedUser:
        ...

    def create_many(self, entries: Sequence[ScoredCandidate]) -> list[PersistedUser]:
        ...

    def file_exists(self, filename: str) -> bool:
        ...

    def register_file(self, filename: str) -> ProcessedFileRecord:
        ...


class SQLAlchemyIdentityStore:
    """
    IdentityStore backed by SQLAlchemy; every call runs in its own transaction.

    Unique-constraint violations surface as DuplicateKeyError /
    DuplicateFileError, values the database refuses (length, encoding) as
    InvalidRecordError, any other database failure as TransientStoreError.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        if session_factory is None:
            from db.session import get_session_factory

            session_factory = get_session_factory()
        self._session_factory = session_factory

    def create_one(self, entry: ScoredCandidate) -> PersistedUser:
        return self.create_many([entry])[0]

    def create_many(self, entries: Sequence[ScoredCandidate]) -> list[PersistedUser]:
        if not entries:
            return []

        try:
            with self._session_factory() as session, session.begin():
                users = UserRepository(session).add_all([_to_model(entry) for entry in entries])
                return [_to_persisted(user) for user in users]
        except IntegrityError as exc:
            raise DuplicateKeyError(f"Duplicate identity record: {exc.orig}") from exc
        except DataError as exc:
            raise InvalidRecordError(f"Identity record rejected: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise TransientStoreError(f"User write failed: {exc}") from exc

    def file_exists(self, filename: str) -> bool:
        try:
            with self._session_factory() as session:
                return ProcessedFileRepository(session).get_by_filename(filename) is not None
        except SQLAlchemyError as exc:
            raise TransientStoreError(f"Processed-file lookup failed: {exc}") from exc

    def register_file(self, filename: str) -> ProcessedFileRecord:
        try:
            with self._session_factory() as session, session.begin():
                record = ProcessedFileRepository(session).create(filename)
                return _to_file_record(record)
        except IntegrityError as exc:
            raise DuplicateFileError(f"File already registered: {filename}") from exc
        except SQLAlchemyError as exc:
            raise TransientStoreError(f"Processed-file registration failed: {exc}") from exc

    def list_processed_files(self) -> list[ProcessedFileRecord]:
        with self._session_factory() as session:
            return [_to_file_record(record) for record in ProcessedFileRepository(session).list_all()]

    def get_user(self, user_id: uuid.UUID) -> PersistedUser | None:
        with self._session_factory() as session:
            user = UserRepository(session).get(user_id)
            return _to_persisted(user) if user is not None else None

    def list_users(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        min_trust_score: float | None = None,
        max_trust_score: float | None = None,
        email: str | None = None,
    ) -> tuple[list[PersistedUser], int]:
        with self._session_factory() as session:
            users, total = UserRepository(session).list_page(
                page=page,
                limit=limit,
                min_trust_score=min_trust_score,
                max_trust_score=max_trust_score,
                email=email,
            )
            return [_to_persisted(user) for user in users], total

    def get_stats(self) -> UserStats:
        with self._session_factory() as session:
            return UserRepository(session).stats()


def _to_model(entry: ScoredCandidate) -> User:
    candidate = entry.candidate
    return User(
        full_name=candidate.full_name,
        email=candidate.email,
        phone=candidate.phone,
        source_file=candidate.source_file,
        trust_score=entry.trust_score,
    )


def _to_persisted(user: User) -> PersistedUser:
    return PersistedUser(
        id=user.id,
        full_name=user.full_name,
        email=user.email,
        phone=user.phone,
        source_file=user.source_file,
        trust_score=user.trust_score,
        ingested_at=user.ingested_at,
    )


def _to_file_record(record: ProcessedFile) -> ProcessedFileRecord:
    return ProcessedFileRecord(filename=record.filename, processed_at=record.processed_at)


@lru_cache(maxsize=1)
def get_identity_store() -> SQLAlchemyIdentityStore:
    """
    Build and cache the store bound to the shared session factory.
    """

    return SQLAlchemyIdentityStore()
