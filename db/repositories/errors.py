"""
Repository-layer exceptions for identity persistence.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for identity store failures."""


class TransientStoreError(StoreError):
    """Raised when a store operation failed for a reason expected to clear on retry."""


class DuplicateKeyError(StoreError):
    """Raised when a write collides with an existing unique identifier (email)."""


class DuplicateFileError(StoreError):
    """Raised when a filename is registered as processed more than once."""


class InvalidRecordError(StoreError):
    """Raised when the database rejects a record's values (e.g. a column length limit)."""
