"""
app/services/source_fetcher.py

Streams remote CSV sources over HTTP.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO
from urllib.parse import unquote, urlparse

import requests
import urllib3

logger = logging.getLogger(__name__)


class SourceFetchError(RuntimeError):
    """
    Raised when a remote source cannot be opened or read.
    """


def filename_from_url(url: str) -> str:
    """
    Return the last path segment of a URL, ignoring query and fragment.
    """

    path = urlparse(url).path
    segment = unquote(path.rstrip("/").rsplit("/", 1)[-1])
    if not segment:
        raise SourceFetchError(f"Cannot derive a filename from URL: {url}")
    return segment


class SourceFetcher:
    """
    Opens a streaming HTTP response for a CSV URL.

    The timeout applies to the connection and to every socket read, so a
    stalled transfer aborts the ingestion call.
    """

    def __init__(self, *, session: requests.Session | None = None) -> None:
        self._session = session or requests.Session()

    @contextmanager
    def open(self, url: str, *, timeout_seconds: float) -> Iterator[BinaryIO]:
        try:
            response = self._session.get(url, stream=True, timeout=timeout_seconds)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            logger.error("Source fetch failed url=%s status=%s", url, status_code)
            raise SourceFetchError(f"Source returned HTTP {status_code}: {url}") from exc
        except requests.RequestException as exc:
            logger.error("Source fetch failed url=%s error=%s", url, exc)
            raise SourceFetchError(f"Unable to fetch source: {url}") from exc

        try:
            response.raw.decode_content = True
            yield response.raw
        except (urllib3.exceptions.HTTPError, requests.RequestException) as exc:
            logger.error("Source read failed url=%s error=%s", url, exc)
            raise SourceFetchError(f"Source stream interrupted: {url}") from exc
        finally:
            response.close()
