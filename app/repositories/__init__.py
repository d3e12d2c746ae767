"""
app/repositories package marker.
"""

from app.repositories.identity_store import (
    IdentityStore,
    SQLAlchemyIdentityStore,
    get_identity_store,
)

__all__ = [
    "IdentityStore",
    "SQLAlchemyIdentityStore",
    "get_identity_store",
]
