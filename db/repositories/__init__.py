"""
Repository layer exports.
"""

from db.repositories.errors import (
    DuplicateFileError,
    DuplicateKeyError,
    InvalidRecordError,
    StoreError,
    TransientStoreError,
)
from db.repositories.processed_file_repository import ProcessedFileRepository
from db.repositories.user_repository import UserRepository, UserStats

__all__ = [
    "ProcessedFileRepository",
    "UserRepository",
    "UserStats",
    "StoreError",
    "TransientStoreError",
    "DuplicateKeyError",
    "DuplicateFileError",
    "InvalidRecordError",
]
