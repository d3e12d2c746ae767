from __future__ import annotations

import pytest

from app.domain.identity import CandidateUser, ScoredCandidate
from app.services.batch_writer import BatchAccumulator, BatchEntry, RetryingBatchWriter
from db.repositories.errors import DuplicateKeyError, TransientStoreError
from tests.fakes import FakeIdentityStore


def _entry(index: int, *, email: str | None = None, full_name: str | None = None) -> BatchEntry:
    candidate = CandidateUser(
        full_name=full_name or f"User {index}",
        email=email or f"user{index}@example.com",
        phone=f"+1415555{index:04d}",
        source_file="batch.csv",
    )
    return BatchEntry(
        row_number=index,
        raw_data={"Name": candidate.full_name, "Email": candidate.email},
        scored=ScoredCandidate(candidate=candidate, trust_score=1.0),
    )


def _writer(store: FakeIdentityStore, sleeps: list[float], *, max_retries: int = 3) -> RetryingBatchWriter:
    return RetryingBatchWriter(
        store=store,
        max_retries=max_retries,
        retry_delay_seconds=0.5,
        sleep=sleeps.append,
    )


class TestRetryingBatchWriter:
    def test_empty_batch_does_not_touch_store(self, fake_store, sleeps) -> None:
        outcome = _writer(fake_store, sleeps).write_batch([])

        assert outcome.persisted == [] and outcome.failed == []
        assert fake_store.create_many_calls == []

    def test_success_on_first_attempt(self, fake_store, sleeps) -> None:
        outcome = _writer(fake_store, sleeps).write_batch([_entry(1), _entry(2)])

        assert len(outcome.persisted) == 2
        assert sleeps == []

    def test_retries_with_fixed_delay(self, sleeps) -> None:
        store = FakeIdentityStore(failures=[TransientStoreError("blip")])

        outcome = _writer(store, sleeps).write_batch([_entry(1)])

        assert len(outcome.persisted) == 1
        assert store.create_many_calls == [1, 1]
        assert sleeps == [0.5]

    def test_exhaustion_fails_every_row_with_attempt_count(self, sleeps) -> None:
        store = FakeIdentityStore(failures=[TransientStoreError("down")] * 2)

        outcome = _writer(store, sleeps, max_retries=2).write_batch([_entry(7), _entry(8)])

        assert outcome.persisted == []
        assert [error.row_number for error in outcome.failed] == [7, 8]
        assert outcome.failed[0].raw_data["Email"] == "user7@example.com"
        assert outcome.failed[0].error_message == "Batch write failed after 2 attempt(s): down"
        assert sleeps == [0.5]

    def test_single_attempt_never_sleeps(self, sleeps) -> None:
        store = FakeIdentityStore(failures=[TransientStoreError("down")])

        outcome = _writer(store, sleeps, max_retries=1).write_batch([_entry(1)])

        assert len(outcome.failed) == 1
        assert sleeps == []

    def test_duplicate_key_falls_back_to_row_writes(self, fake_store, sleeps) -> None:
        entries = [_entry(1), _entry(2, email="user1@example.com"), _entry(3)]

        outcome = _writer(fake_store, sleeps).write_batch(entries)

        assert fake_store.create_one_calls == 3
        assert [user.email for user in outcome.persisted] == ["user1@example.com", "user3@example.com"]
        assert outcome.failed[0].row_number == 2
        assert outcome.failed[0].validation_errors[0].reason == "Email is already registered."

    def test_rejected_value_fails_only_that_row(self, fake_store, sleeps) -> None:
        entries = [_entry(1), _entry(2, full_name="N" * 300), _entry(3)]

        outcome = _writer(fake_store, sleeps).write_batch(entries)

        assert [user.email for user in outcome.persisted] == ["user1@example.com", "user3@example.com"]
        assert [error.row_number for error in outcome.failed] == [2]
        assert "too long" in outcome.failed[0].error_message
        assert sleeps == []

    def test_row_fallback_retries_transient_errors(self, sleeps) -> None:
        store = FakeIdentityStore(
            failures=[DuplicateKeyError("dup")],
            row_failures=[TransientStoreError("blip")],
        )

        outcome = _writer(store, sleeps).write_batch([_entry(1), _entry(2), _entry(3)])

        assert len(outcome.persisted) == 3
        assert outcome.failed == []
        assert store.create_one_calls == 4
        assert sleeps == [0.5]

    def test_row_fallback_gives_up_after_max_attempts(self, sleeps) -> None:
        store = FakeIdentityStore(
            failures=[DuplicateKeyError("dup")],
            row_failures=[TransientStoreError("blip")] * 2,
        )

        outcome = _writer(store, sleeps, max_retries=2).write_batch([_entry(1), _entry(2)])

        assert [user.email for user in outcome.persisted] == ["user2@example.com"]
        assert outcome.failed[0].row_number == 1
        assert outcome.failed[0].error_message == "Row write failed after 2 attempt(s): blip"
        assert sleeps == [0.5]


class TestBatchAccumulator:
    def test_flushes_when_full(self, fake_store, sleeps) -> None:
        accumulator = BatchAccumulator(writer=_writer(fake_store, sleeps), batch_size=2)

        assert accumulator.add(_entry(1)) is None
        assert len(accumulator) == 1
        outcome = accumulator.add(_entry(2))

        assert outcome is not None and len(outcome.persisted) == 2
        assert len(accumulator) == 0

    def test_flush_writes_remainder_once(self, fake_store, sleeps) -> None:
        accumulator = BatchAccumulator(writer=_writer(fake_store, sleeps), batch_size=10)
        accumulator.add(_entry(1))

        first = accumulator.flush()
        second = accumulator.flush()

        assert len(first.persisted) == 1
        assert second.persisted == []
        assert fake_store.create_many_calls == [1]

    @pytest.mark.parametrize("batch_size", [0, -5])
    def test_non_positive_batch_size_behaves_as_one(self, fake_store, sleeps, batch_size: int) -> None:
        accumulator = BatchAccumulator(writer=_writer(fake_store, sleeps), batch_size=batch_size)

        assert accumulator.add(_entry(1)) is not None
