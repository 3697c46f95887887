"""
db/models/collection_session.py

Field collection sessions. Only the columns the registry sync touches are mapped.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class CollectionSessionState:
    ACTIVE = "active"
    COMPLETED = "completed"
    SUBMITTED = "submitted"


class CollectionSession(Base, TimestampMixin):
    __tablename__ = "collection_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[int] = mapped_column(Integer, nullable=False)
    collection_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    state: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=CollectionSessionState.ACTIVE,
        comment="active, completed, submitted",
    )

    __table_args__ = (
        Index("ix_collection_sessions_site_id", "site_id"),
        Index("ix_collection_sessions_state", "state"),
    )
