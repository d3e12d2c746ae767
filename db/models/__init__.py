"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.processed_file import ProcessedFile
from db.models.user import User

__all__ = [
    "ProcessedFile",
    "User",
]
