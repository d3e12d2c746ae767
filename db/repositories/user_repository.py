"""
Repository for identity record persistence and read queries.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.models.user import User

FLAGGED_TRUST_SCORE_THRESHOLD = 0.5


def _escape_like(value: str) -> str:
    # Wildcards in user input match literally.
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class UserStats:
    total_users: int
    average_trust_score: float
    flagged_users: int


class UserRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add_all(self, users: Sequence[User]) -> list[User]:
        if not users:
            return []
        self._session.add_all(users)
        self._session.flush()
        return list(users)

    def get(self, user_id: uuid.UUID) -> User | None:
        return self._session.get(User, user_id)

    def list_page(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        min_trust_score: float | None = None,
        max_trust_score: float | None = None,
        email: str | None = None,
    ) -> tuple[list[User], int]:
        """
        Return one page of users (newest first) and the filtered total.
        """

        stmt: Select[tuple[User]] = select(User)
        count_stmt = select(func.count()).select_from(User)

        conditions = []
        if min_trust_score is not None:
            conditions.append(User.trust_score >= min_trust_score)
        if max_trust_score is not None:
            conditions.append(User.trust_score <= max_trust_score)
        if email:
            conditions.append(User.email.ilike(f"%{_escape_like(email)}%", escape="\\"))
        for condition in conditions:
            stmt = stmt.where(condition)
            count_stmt = count_stmt.where(condition)

        page = max(1, page)
        limit = max(1, limit)
        stmt = (
            stmt.order_by(User.created_at.desc(), User.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        users = list(self._session.scalars(stmt).all())
        total = int(self._session.scalar(count_stmt) or 0)
        return users, total

    def count(self) -> int:
        return int(self._session.scalar(select(func.count()).select_from(User)) or 0)

    def stats(self) -> UserStats:
        total = self.count()
        average = self._session.scalar(select(func.avg(User.trust_score)))
        flagged = self._session.scalar(
            select(func.count())
            .select_from(User)
            .where(User.trust_score < FLAGGED_TRUST_SCORE_THRESHOLD)
        )
        return UserStats(
            total_users=total,
            average_trust_score=float(average or 0.0),
            flagged_users=int(flagged or 0),
        )
