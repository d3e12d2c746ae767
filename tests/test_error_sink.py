from __future__ import annotations

import json
import threading
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from app.domain.identity import FieldError, IngestionError
from app.services.error_sink import ErrorSink, safe_log_stem


def _error(row_number: int) -> IngestionError:
    return IngestionError(
        row_number=row_number,
        raw_data={"Name": "X", "Email": "bad", "Phone": ""},
        error_message="Invalid email format.",
        validation_errors=(FieldError(field="email", reason="Invalid email format."),),
    )


class _BlockingErrorSink(ErrorSink):
    """Holds the worker inside its first write until released."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.entered = threading.Event()
        self.release = threading.Event()

    def _write(self, filename: str, error: IngestionError) -> Path:
        self.entered.set()
        self.release.wait(timeout=5.0)
        return super()._write(filename, error)


class _FailingOnceErrorSink(ErrorSink):
    """Raises an unexpected error from its first write only."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.attempts = 0

    def _write(self, filename: str, error: IngestionError) -> Path:
        self.attempts += 1
        if self.attempts == 1:
            raise RuntimeError("serializer exploded")
        return super()._write(filename, error)


class TestErrorSink(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.log_dir = Path(self._tmp.name) / "errors"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_writes_one_json_document_per_error(self) -> None:
        sink = ErrorSink(log_dir=self.log_dir)

        self.assertTrue(sink.log_error("people.csv", _error(3)))
        self.assertTrue(sink.close(timeout=5.0))

        files = list(self.log_dir.glob("*.json"))
        self.assertEqual(len(files), 1)
        self.assertTrue(files[0].name.startswith("people.csv_"))
        self.assertTrue(files[0].name.endswith("_row3.json"))
        document = json.loads(files[0].read_text(encoding="utf-8"))
        self.assertEqual(document["filename"], "people.csv")
        self.assertEqual(document["error"]["validation_errors"][0]["field"], "email")

    def test_worker_restarts_after_going_idle(self) -> None:
        sink = ErrorSink(log_dir=self.log_dir)

        sink.log_error("a.csv", _error(1))
        self.assertTrue(sink.flush(timeout=5.0))
        sink.log_error("a.csv", _error(2))
        self.assertTrue(sink.close(timeout=5.0))

        self.assertEqual(len(list(self.log_dir.glob("*.json"))), 2)

    def test_full_queue_drops_without_blocking(self) -> None:
        sink = _BlockingErrorSink(log_dir=self.log_dir, max_queue_size=1)

        self.assertTrue(sink.log_error("q.csv", _error(1)))
        self.assertTrue(sink.entered.wait(timeout=5.0))
        self.assertTrue(sink.log_error("q.csv", _error(2)))
        self.assertFalse(sink.log_error("q.csv", _error(3)))
        self.assertEqual(sink.dropped, 1)

        sink.release.set()
        self.assertTrue(sink.close(timeout=5.0))
        self.assertEqual(len(list(self.log_dir.glob("*.json"))), 2)

    def test_closed_sink_rejects_errors(self) -> None:
        sink = ErrorSink(log_dir=self.log_dir)
        sink.close(timeout=1.0)

        self.assertFalse(sink.log_error("late.csv", _error(1)))
        self.assertFalse(self.log_dir.exists())

    def test_unwritable_directory_is_logged_not_raised(self) -> None:
        blocker = Path(self._tmp.name) / "not-a-dir"
        blocker.write_text("x", encoding="utf-8")
        sink = ErrorSink(log_dir=blocker / "errors")

        with self.assertLogs("app.services.error_sink", level="ERROR"):
            sink.log_error("x.csv", _error(1))
            self.assertTrue(sink.close(timeout=5.0))

    def test_unexpected_write_error_keeps_worker_alive(self) -> None:
        sink = _FailingOnceErrorSink(log_dir=self.log_dir)

        with self.assertLogs("app.services.error_sink", level="ERROR") as captured:
            sink.log_error("boom.csv", _error(1))
            self.assertTrue(sink.flush(timeout=5.0))
        self.assertIn("serializer exploded", "\n".join(captured.output))

        sink.log_error("boom.csv", _error(2))
        self.assertTrue(sink.close(timeout=5.0))

        files = list(self.log_dir.glob("*.json"))
        self.assertEqual(len(files), 1)
        self.assertTrue(files[0].name.endswith("_row2.json"))

    def test_safe_log_stem(self) -> None:
        self.assertEqual(safe_log_stem("../../etc/passwd"), "passwd")
        self.assertEqual(safe_log_stem("my file (1).csv"), "my_file__1_.csv")
        self.assertEqual(safe_log_stem("C:\\uploads\\users.csv"), "users.csv")
        self.assertEqual(safe_log_stem("..."), "upload")


if __name__ == "__main__":
    unittest.main()
