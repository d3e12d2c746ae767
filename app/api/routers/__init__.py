"""
app/api/routers package marker.
"""

from app.api.routers.identity_ingestion import router as identity_ingestion_router
from app.api.routers.processed_files_router import router as processed_files_router
from app.api.routers.users_router import router as users_router

__all__ = [
    "identity_ingestion_router",
    "processed_files_router",
    "users_router",
]
