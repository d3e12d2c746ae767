"""
db/models/user.py

Identity records persisted by CSV ingestion.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, utcnow


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        comment="Natural identifier; uniqueness is the cross-file dedup control",
    )
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    trust_score: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="0-1 confidence from field-validity deductions",
    )
    source_file: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        comment="Filename of the CSV the record was ingested from",
    )
    ingested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_trust_score", "trust_score"),
        Index("ix_users_source_file", "source_file"),
        Index("ix_users_created_at", "created_at"),
    )
