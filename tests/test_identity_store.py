"""
SQLAlchemy store tests against an in-memory SQLite database.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import DataError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401
from app.domain.identity import CandidateUser, ScoredCandidate
from app.repositories.identity_store import SQLAlchemyIdentityStore
from db.base import Base
from db.repositories.errors import (
    DuplicateFileError,
    DuplicateKeyError,
    InvalidRecordError,
    TransientStoreError,
)
from db.repositories.user_repository import UserRepository


def _scored(email: str, trust_score: float = 1.0, *, name: str = "Ada Lovelace") -> ScoredCandidate:
    return ScoredCandidate(
        candidate=CandidateUser(
            full_name=name,
            email=email,
            phone="+14155550101",
            source_file="people.csv",
        ),
        trust_score=trust_score,
    )


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker[Session]]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture()
def store(session_factory) -> SQLAlchemyIdentityStore:
    return SQLAlchemyIdentityStore(session_factory)


class TestUserWrites:
    def test_create_many_persists_all_rows(self, store) -> None:
        persisted = store.create_many([_scored("a@example.com"), _scored("b@example.com")])

        assert [user.email for user in persisted] == ["a@example.com", "b@example.com"]
        assert all(user.id is not None for user in persisted)
        assert store.get_stats().total_users == 2

    def test_duplicate_in_batch_rolls_back_whole_batch(self, store) -> None:
        store.create_one(_scored("a@example.com"))

        with pytest.raises(DuplicateKeyError):
            store.create_many([_scored("new@example.com"), _scored("a@example.com")])

        assert store.get_stats().total_users == 1

    def test_create_many_with_no_entries(self, store) -> None:
        assert store.create_many([]) == []

    def test_database_failure_is_transient(self, session_factory) -> None:
        store = SQLAlchemyIdentityStore(session_factory)
        Base.metadata.drop_all(session_factory.kw["bind"])

        with pytest.raises(TransientStoreError) as excinfo:
            store.create_one(_scored("a@example.com"))

        assert isinstance(excinfo.value.__cause__, OperationalError)

    def test_rejected_value_is_not_transient(self, store, monkeypatch) -> None:
        def _reject(self, users):
            raise DataError(
                "INSERT INTO users",
                {},
                Exception("value too long for type character varying(255)"),
            )

        monkeypatch.setattr(UserRepository, "add_all", _reject)

        with pytest.raises(InvalidRecordError) as excinfo:
            store.create_many([_scored("a@example.com")])

        assert "too long" in str(excinfo.value)


class TestProcessedFiles:
    def test_register_and_lookup(self, store) -> None:
        assert store.file_exists("people.csv") is False

        record = store.register_file("people.csv")

        assert record.filename == "people.csv"
        assert store.file_exists("people.csv") is True
        assert [item.filename for item in store.list_processed_files()] == ["people.csv"]

    def test_second_registration_is_duplicate(self, store) -> None:
        store.register_file("people.csv")

        with pytest.raises(DuplicateFileError):
            store.register_file("people.csv")


class TestUserQueries:
    def test_filters_and_pagination(self, store) -> None:
        store.create_many(
            [
                _scored("low@example.com", 0.2),
                _scored("mid@example.com", 0.6),
                _scored("high@corp.example", 1.0),
            ]
        )

        users, total = store.list_users(min_trust_score=0.5)
        assert total == 2
        assert {user.email for user in users} == {"mid@example.com", "high@corp.example"}

        users, total = store.list_users(email="CORP")
        assert total == 1 and users[0].email == "high@corp.example"

        users, total = store.list_users(page=2, limit=2)
        assert total == 3
        assert len(users) == 1

    def test_email_filter_matches_wildcards_literally(self, store) -> None:
        store.create_many([_scored("a_b@example.com"), _scored("axb@example.com")])

        users, total = store.list_users(email="a_b")
        assert total == 1 and users[0].email == "a_b@example.com"

        users, total = store.list_users(email="%")
        assert total == 0 and users == []

    def test_get_user(self, store) -> None:
        created = store.create_one(_scored("a@example.com"))

        fetched = store.get_user(created.id)

        assert fetched is not None and fetched.email == "a@example.com"

    def test_stats(self, store) -> None:
        store.create_many([_scored("a@example.com", 0.4), _scored("b@example.com", 1.0)])

        stats = store.get_stats()

        assert stats.total_users == 2
        assert stats.average_trust_score == pytest.approx(0.7)
        assert stats.flagged_users == 1
