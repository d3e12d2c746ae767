"""
app/services/batch_writer.py

Batch accumulation and retrying bulk writes for accepted identity rows.

A batch keeps each row's number and raw data next to the scored candidate,
so a batch that cannot be written is reported row by row.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from functools import partial
from typing import Any, TypeVar

from app.domain.identity import FieldError, IngestionError, PersistedUser, ScoredCandidate
from app.repositories.identity_store import IdentityStore
from db.repositories.errors import DuplicateKeyError, InvalidRecordError, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BatchEntry:
    """
    One accepted row waiting to be written.
    """

    row_number: int
    raw_data: Any
    scored: ScoredCandidate


@dataclass
class BatchWriteOutcome:
    """
    Per-flush result: what was stored and which rows failed.
    """

    persisted: list[PersistedUser] = field(default_factory=list)
    failed: list[IngestionError] = field(default_factory=list)


class RetryingBatchWriter:
    """
    Writes batches through ``IdentityStore.create_many`` with fixed-delay retries.
    """

    def __init__(
        self,
        *,
        store: IdentityStore,
        max_retries: int,
        retry_delay_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._max_retries = max(1, max_retries)
        self._retry_delay_seconds = max(0.0, retry_delay_seconds)
        self._sleep = sleep

    def write_batch(self, entries: Sequence[BatchEntry]) -> BatchWriteOutcome:
        """
        Persist a batch.

        ``max_retries`` is the total number of attempts. Transient failures
        are retried; a duplicate key or a rejected value falls back to
        row-by-row writes; when every attempt fails, each row of the batch
        is reported as failed.
        """

        if not entries:
            return BatchWriteOutcome()

        scored = [entry.scored for entry in entries]
        try:
            persisted = self._call_with_retries(
                partial(self._store.create_many, scored),
                scope="batch",
                rows=len(entries),
            )
        except (DuplicateKeyError, InvalidRecordError) as exc:
            logger.warning(
                "Batch write rejected rows=%s; writing rows individually: %s",
                len(entries),
                exc,
            )
            return self._write_individually(entries)
        except TransientStoreError as exc:
            message = f"Batch write failed after {self._max_retries} attempt(s): {exc}"
            logger.error(
                "Batch write exhausted retries rows=%s first_row=%s last_row=%s error=%s",
                len(entries),
                entries[0].row_number,
                entries[-1].row_number,
                exc,
            )
            return BatchWriteOutcome(
                failed=[
                    IngestionError(
                        row_number=entry.row_number,
                        raw_data=entry.raw_data,
                        error_message=message,
                    )
                    for entry in entries
                ]
            )

        return BatchWriteOutcome(persisted=list(persisted))

    def _write_individually(self, entries: Sequence[BatchEntry]) -> BatchWriteOutcome:
        outcome = BatchWriteOutcome()
        for entry in entries:
            try:
                outcome.persisted.append(
                    self._call_with_retries(
                        partial(self._store.create_one, entry.scored),
                        scope=f"row {entry.row_number}",
                        rows=1,
                    )
                )
            except DuplicateKeyError as exc:
                outcome.failed.append(
                    IngestionError(
                        row_number=entry.row_number,
                        raw_data=entry.raw_data,
                        error_message=str(exc),
                        validation_errors=(
                            FieldError(field="email", reason="Email is already registered."),
                        ),
                    )
                )
            except InvalidRecordError as exc:
                outcome.failed.append(
                    IngestionError(
                        row_number=entry.row_number,
                        raw_data=entry.raw_data,
                        error_message=str(exc),
                    )
                )
            except TransientStoreError as exc:
                outcome.failed.append(
                    IngestionError(
                        row_number=entry.row_number,
                        raw_data=entry.raw_data,
                        error_message=(
                            f"Row write failed after {self._max_retries} attempt(s): {exc}"
                        ),
                    )
                )
        return outcome

    def _call_with_retries(self, operation: Callable[[], T], *, scope: str, rows: int) -> T:
        """
        Run ``operation``, retrying TransientStoreError with a fixed delay.

        Raises the last TransientStoreError once every attempt has failed;
        any other error propagates immediately.
        """

        attempt = 1
        while True:
            try:
                result = operation()
            except TransientStoreError as exc:
                if attempt >= self._max_retries:
                    raise
                logger.warning(
                    "Store write retry scope=%s attempt=%s/%s wait_seconds=%.2f rows=%s error=%s",
                    scope,
                    attempt,
                    self._max_retries,
                    self._retry_delay_seconds,
                    rows,
                    exc,
                )
                self._sleep(self._retry_delay_seconds)
                attempt += 1
                continue

            if attempt > 1:
                logger.info(
                    "Store write succeeded scope=%s attempt=%s/%s rows=%s",
                    scope,
                    attempt,
                    self._max_retries,
                    rows,
                )
            return result


class BatchAccumulator:
    """
    Buffers accepted rows for one ingestion call and flushes full batches.
    """

    def __init__(self, *, writer: RetryingBatchWriter, batch_size: int) -> None:
        self._writer = writer
        self._batch_size = max(1, batch_size)
        self._buffer: list[BatchEntry] = []

    def __len__(self) -> int:
        return len(self._buffer)

    def add(self, entry: BatchEntry) -> BatchWriteOutcome | None:
        """
        Buffer one entry; returns the flush outcome when the batch filled up.
        """

        self._buffer.append(entry)
        if len(self._buffer) >= self._batch_size:
            return self.flush()
        return None

    def flush(self) -> BatchWriteOutcome:
        """
        Write whatever is buffered; an empty buffer is a no-op.
        """

        if not self._buffer:
            return BatchWriteOutcome()
        batch = self._buffer
        self._buffer = []
        return self._writer.write_batch(batch)
