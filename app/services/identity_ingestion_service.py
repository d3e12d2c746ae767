"""
app/services/identity_ingestion_service.py

Service layer for identity CSV ingestion.

One call runs one synchronous pipeline:

    dedup check -> decode -> map -> validate -> accumulate -> flush
                -> summarize -> register processed file

The CSV reader is pulled one record at a time, so a row is fully validated
and buffered (and its batch flushed, when full) before the next row is
decoded. Row numbers therefore follow decode order exactly.
"""

from __future__ import annotations

import csv
import io
import logging
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import AbstractContextManager, nullcontext
from enum import Enum
from functools import lru_cache
from typing import Any, BinaryIO

from app.config import IngestionSettings, get_ingestion_settings
from app.domain.identity import IngestionError, IngestionSummary, RawRecord, ScoredCandidate
from app.mappers.row_mapper import RowMapper
from app.repositories.identity_store import IdentityStore, get_identity_store
from app.services.batch_writer import (
    BatchAccumulator,
    BatchEntry,
    BatchWriteOutcome,
    RetryingBatchWriter,
)
from app.services.error_sink import ErrorSink, get_error_sink
from app.services.source_fetcher import SourceFetcher, filename_from_url
from app.validators.identity_validator import IdentityValidator
from db.repositories.errors import DuplicateFileError, TransientStoreError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CSVParseError(ValueError):
    """
    Raised when the byte stream is not a decodable CSV document.
    """


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class IngestionState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    STREAMING = "streaming"
    DRAINING = "draining"
    SUMMARIZING = "summarizing"
    DONE = "done"
    FAILED = "failed"


_ALLOWED_TRANSITIONS: dict[IngestionState, frozenset[IngestionState]] = {
    IngestionState.IDLE: frozenset({IngestionState.CHECKING}),
    IngestionState.CHECKING: frozenset({IngestionState.STREAMING, IngestionState.DONE}),
    IngestionState.STREAMING: frozenset({IngestionState.DRAINING, IngestionState.FAILED}),
    IngestionState.DRAINING: frozenset({IngestionState.SUMMARIZING, IngestionState.FAILED}),
    IngestionState.SUMMARIZING: frozenset({IngestionState.DONE}),
    IngestionState.DONE: frozenset(),
    IngestionState.FAILED: frozenset(),
}


class _IngestionRun:
    """
    Mutable state of one ingestion call. Never shared between calls.
    """

    def __init__(
        self,
        *,
        filename: str,
        accumulator: BatchAccumulator,
        error_sink: ErrorSink,
        log_validation_errors: bool,
    ) -> None:
        self.filename = filename
        self.state = IngestionState.IDLE
        self.accumulator = accumulator
        self.row_number = 0
        self.successful_rows = 0
        self.failed_rows = 0
        self.errors: list[IngestionError] = []
        self._error_sink = error_sink
        self._log_validation_errors = log_validation_errors

    def transition(self, new_state: IngestionState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal ingestion transition {self.state.value} -> {new_state.value}")
        logger.debug(
            "Ingestion state file=%s %s -> %s",
            self.filename,
            self.state.value,
            new_state.value,
        )
        self.state = new_state

    def record_failure(self, error: IngestionError) -> None:
        self.failed_rows += 1
        if self._log_validation_errors:
            logger.warning(
                "Error processing row=%s file=%s message=%s validation_errors=%s",
                error.row_number,
                self.filename,
                error.error_message,
                [item.to_dict() for item in error.validation_errors],
            )
        self.errors.append(error)
        self._error_sink.log_error(self.filename, error)

    def apply(self, outcome: BatchWriteOutcome | None) -> None:
        if outcome is None:
            return
        self.successful_rows += len(outcome.persisted)
        for error in outcome.failed:
            self.record_failure(error)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class IdentityIngestionService:
    """
    Coordinates CSV decoding, mapping, validation, batching, and dedup.
    """

    def __init__(
        self,
        *,
        settings: IngestionSettings,
        store: IdentityStore,
        error_sink: ErrorSink,
        fetcher: SourceFetcher | None = None,
        mapper: RowMapper | None = None,
        validator: IdentityValidator | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._store = store
        self._error_sink = error_sink
        self._fetcher = fetcher or SourceFetcher()
        self._mapper = mapper or RowMapper()
        self._validator = validator or IdentityValidator()
        self._sleep = sleep

    def ingest_from_upload(
        self,
        stream: BinaryIO,
        filename: str,
        mapping: Mapping[str, int] | None = None,
    ) -> IngestionSummary:
        """
        Ingest an uploaded CSV byte stream.

        With ``mapping`` the file is read without a header row and fields are
        taken by column index; otherwise by header name.
        """

        return self._ingest(
            filename=filename,
            open_stream=lambda: nullcontext(stream),
            mapping=mapping,
        )

    def ingest_from_url(self, url: str, timeout_ms: int | None = None) -> IngestionSummary:
        """
        Ingest a CSV fetched from ``url``; the filename is the URL's last path segment.

        The registry is consulted before any request is made.
        """

        filename = filename_from_url(url)
        timeout_seconds = (
            timeout_ms / 1000.0 if timeout_ms is not None else self._settings.fetch_timeout_seconds
        )
        return self._ingest(
            filename=filename,
            open_stream=lambda: self._fetcher.open(url, timeout_seconds=timeout_seconds),
        )

    def _ingest(
        self,
        *,
        filename: str,
        open_stream: Callable[[], AbstractContextManager[BinaryIO]],
        mapping: Mapping[str, int] | None = None,
    ) -> IngestionSummary:
        writer = RetryingBatchWriter(
            store=self._store,
            max_retries=self._settings.max_retries,
            retry_delay_seconds=self._settings.retry_delay_seconds,
            sleep=self._sleep,
        )
        run = _IngestionRun(
            filename=filename,
            accumulator=BatchAccumulator(writer=writer, batch_size=self._settings.batch_size),
            error_sink=self._error_sink,
            log_validation_errors=self._settings.log_validation_errors,
        )

        run.transition(IngestionState.CHECKING)
        if self._store.file_exists(filename):
            logger.info("File %s was already processed", filename)
            run.transition(IngestionState.DONE)
            return IngestionSummary.already_processed(filename)

        run.transition(IngestionState.STREAMING)
        try:
            with open_stream() as stream:
                for record in self._decode(stream, positional=mapping is not None):
                    self._handle_record(run, record, mapping)

            run.transition(IngestionState.DRAINING)
            run.apply(run.accumulator.flush())
        except Exception:
            run.transition(IngestionState.FAILED)
            logger.error(
                "Ingestion aborted file=%s rows_decoded=%s persisted=%s",
                filename,
                run.row_number,
                run.successful_rows,
            )
            raise

        run.transition(IngestionState.SUMMARIZING)
        summary = IngestionSummary(
            total_rows=run.row_number,
            successful_rows=run.successful_rows,
            failed_rows=run.failed_rows,
            filename=filename,
            errors=run.errors,
        )
        if summary.successful_rows > 0:
            self._register(filename)
        run.transition(IngestionState.DONE)

        logger.info(
            "Ingestion complete file=%s total=%s successful=%s failed=%s",
            filename,
            summary.total_rows,
            summary.successful_rows,
            summary.failed_rows,
        )
        return summary

    # ------------------------------------------------------------------
    # Ingestion internals
    # ------------------------------------------------------------------

    def _handle_record(
        self,
        run: _IngestionRun,
        record: RawRecord,
        mapping: Mapping[str, int] | None,
    ) -> None:
        run.row_number += 1
        raw_data = _snapshot(record)

        candidate = self._mapper.map_record(record, source_file=run.filename, mapping=mapping)
        outcome = self._validator.validate(candidate)
        if not outcome.accepted:
            run.record_failure(
                IngestionError(
                    row_number=run.row_number,
                    raw_data=raw_data,
                    error_message="; ".join(error.reason for error in outcome.errors),
                    validation_errors=outcome.errors,
                )
            )
            return

        run.apply(
            run.accumulator.add(
                BatchEntry(
                    row_number=run.row_number,
                    raw_data=raw_data,
                    scored=ScoredCandidate(
                        candidate=candidate,
                        trust_score=outcome.trust_score or 0.0,
                    ),
                )
            )
        )

    @staticmethod
    def _decode(stream: BinaryIO, *, positional: bool) -> Iterator[RawRecord]:
        text_stream = io.TextIOWrapper(stream, encoding="utf-8-sig", newline="")
        try:
            if positional:
                for row in csv.reader(text_stream, strict=True):
                    if row:
                        yield row
            else:
                # DictReader skips blank lines and treats the first line as the header.
                yield from csv.DictReader(text_stream, strict=True)
        except UnicodeDecodeError as exc:
            raise CSVParseError("CSV must be UTF-8 encoded.") from exc
        except csv.Error as exc:
            raise CSVParseError(f"Invalid CSV format: {exc}") from exc
        finally:
            try:
                text_stream.detach()
            except ValueError:
                pass

    def _register(self, filename: str) -> None:
        try:
            self._store.register_file(filename)
        except DuplicateFileError:
            logger.info("File %s was registered by a concurrent ingestion", filename)
        except TransientStoreError as exc:
            # Rows are already persisted; a re-run would report them as duplicates.
            logger.error("Failed to register processed file=%s: %s", filename, exc)


def _snapshot(record: RawRecord) -> Any:
    if isinstance(record, Mapping):
        return dict(record)
    return list(record)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_identity_ingestion_service() -> IdentityIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """

    return IdentityIngestionService(
        settings=get_ingestion_settings(),
        store=get_identity_store(),
        error_sink=get_error_sink(),
    )
