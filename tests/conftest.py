"""
Shared fixtures for ingestion tests.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from app.config import IngestionSettings
from app.services.error_sink import ErrorSink
from app.services.identity_ingestion_service import IdentityIngestionService
from tests.fakes import FakeIdentityStore


@pytest.fixture()
def fake_store() -> FakeIdentityStore:
    return FakeIdentityStore()


@pytest.fixture()
def error_sink(tmp_path) -> Iterator[ErrorSink]:
    sink = ErrorSink(log_dir=tmp_path / "errors", max_queue_size=5000)
    yield sink
    sink.close(timeout=5.0)


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def make_service(error_sink, sleeps):
    """Factory for a service wired to the test error sink and a recording sleep."""

    def _build(store, *, fetcher=None, **overrides) -> IdentityIngestionService:
        settings = IngestionSettings(log_validation_errors=False, **overrides)
        return IdentityIngestionService(
            settings=settings,
            store=store,
            error_sink=error_sink,
            fetcher=fetcher,
            sleep=sleeps.append,
        )

    return _build
