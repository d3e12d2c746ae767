"""
app/api/routers/users_router.py

Read endpoints for ingested identity records.
"""

from __future__ import annotations

import math
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.repositories.identity_store import SQLAlchemyIdentityStore, get_identity_store
from app.schemas.users import PaginationMeta, UserListResponse, UserResponse, UserStatsResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse)
def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    min_trust_score: float | None = Query(default=None, ge=0.0, le=1.0),
    max_trust_score: float | None = Query(default=None, ge=0.0, le=1.0),
    email: str | None = Query(default=None, description="Case-insensitive partial match"),
    store: SQLAlchemyIdentityStore = Depends(get_identity_store),
) -> UserListResponse:
    users, total = store.list_users(
        page=page,
        limit=limit,
        min_trust_score=min_trust_score,
        max_trust_score=max_trust_score,
        email=email,
    )
    return UserListResponse(
        data=[UserResponse.model_validate(user) for user in users],
        meta=PaginationMeta(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.get("/stats/summary", response_model=UserStatsResponse)
def get_user_stats(
    store: SQLAlchemyIdentityStore = Depends(get_identity_store),
) -> UserStatsResponse:
    """
    Totals, average trust score, and the count of users scored below 0.5.
    """

    stats = store.get_stats()
    return UserStatsResponse(
        total_users=stats.total_users,
        average_trust_score=stats.average_trust_score,
        flagged_users=stats.flagged_users,
    )


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: uuid.UUID,
    store: SQLAlchemyIdentityStore = Depends(get_identity_store),
) -> UserResponse:
    user = store.get_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {user_id} not found",
        )
    return UserResponse.model_validate(user)
