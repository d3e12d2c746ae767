"""
app/schemas/users.py

Response schemas for identity record and processed-file queries.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    id: uuid.UUID
    full_name: str
    email: str
    phone: str
    source_file: str
    trust_score: float
    ingested_at: datetime

    model_config = {"from_attributes": True}


class PaginationMeta(BaseModel):
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)


class UserListResponse(BaseModel):
    data: list[UserResponse] = Field(default_factory=list)
    meta: PaginationMeta


class UserStatsResponse(BaseModel):
    total_users: int = Field(..., ge=0)
    average_trust_score: float
    flagged_users: int = Field(..., ge=0)


class ProcessedFileResponse(BaseModel):
    filename: str
    processed_at: datetime

    model_config = {"from_attributes": True}
