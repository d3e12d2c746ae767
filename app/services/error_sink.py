"""
app/services/error_sink.py

Background, non-blocking durable logging of per-row ingestion errors.

Errors are put on a bounded queue and written by a single worker thread,
one JSON document per error. The worker exits when the queue runs dry and
is started again by the next enqueue, so an idle sink holds no thread.
"""

from __future__ import annotations

import json
import logging
import queue
import re
import threading
import time
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path

from app.config import get_ingestion_settings
from app.domain.identity import IngestionError

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def safe_log_stem(filename: str) -> str:
    """
    Reduce a source filename to something safe to embed in a log path.
    """

    base = Path(filename.replace("\\", "/")).name
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", base).lstrip(".")
    return cleaned or "upload"


class ErrorSink:
    def __init__(self, *, log_dir: str | Path, max_queue_size: int = 10000) -> None:
        self._log_dir = Path(log_dir)
        self._queue: queue.Queue[tuple[str, IngestionError]] = queue.Queue(maxsize=max(1, max_queue_size))
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._worker: threading.Thread | None = None
        self._pending = 0
        self._dropped = 0
        self._closed = False

    @property
    def dropped(self) -> int:
        return self._dropped

    def log_error(self, filename: str, error: IngestionError) -> bool:
        """
        Enqueue an error for durable logging and return immediately.

        Returns False when the error was not accepted (queue full or sink closed).
        """

        with self._lock:
            if self._closed:
                logger.warning(
                    "Error sink closed; dropping error log file=%s row=%s",
                    filename,
                    error.row_number,
                )
                return False
            try:
                self._queue.put_nowait((filename, error))
            except queue.Full:
                self._dropped += 1
                logger.warning(
                    "Error sink queue full; dropping error log file=%s row=%s dropped_total=%s",
                    filename,
                    error.row_number,
                    self._dropped,
                )
                return False
            self._pending += 1
            if self._worker is None:
                self._worker = threading.Thread(
                    target=self._drain,
                    name="ingestion-error-sink",
                    daemon=True,
                )
                self._worker.start()
        logger.debug("Error queued for logging file=%s row=%s", filename, error.row_number)
        return True

    def flush(self, timeout: float | None = None) -> bool:
        """
        Block until every accepted error has been written. Returns False on timeout.
        """

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._idle:
            while self._pending > 0:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._idle.wait(remaining)
        return True

    def close(self, timeout: float | None = None) -> bool:
        """
        Stop accepting errors and wait for the backlog to be written.
        """

        with self._lock:
            self._closed = True
        return self.flush(timeout)

    def _drain(self) -> None:
        while True:
            with self._lock:
                try:
                    filename, error = self._queue.get_nowait()
                except queue.Empty:
                    self._worker = None
                    return

            try:
                self._write(filename, error)
            except Exception:
                logger.exception(
                    "Error processing error queue file=%s row=%s",
                    filename,
                    error.row_number,
                )
            finally:
                with self._idle:
                    self._pending -= 1
                    if self._pending == 0:
                        self._idle.notify_all()

    def _write(self, filename: str, error: IngestionError) -> Path:
        processed_at = datetime.now(timezone.utc)
        stamp = processed_at.strftime("%Y-%m-%dT%H-%M-%S.%fZ")
        path = self._log_dir / f"{safe_log_stem(filename)}_{stamp}_row{error.row_number}.json"
        payload = {
            "filename": filename,
            "processed_at": processed_at.isoformat(),
            "error": error.to_dict(),
        }

        self._log_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
        logger.debug("Error log written to %s", path)
        return path


@lru_cache(maxsize=1)
def get_error_sink() -> ErrorSink:
    """
    Process-wide error sink; outlives any single ingestion call.
    """

    settings = get_ingestion_settings()
    return ErrorSink(
        log_dir=settings.error_log_dir,
        max_queue_size=settings.error_queue_size,
    )
