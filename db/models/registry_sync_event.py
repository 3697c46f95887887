"""
db/models/registry_sync_event.py

Sync ledger: one row per household-month that produced a registry event.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class RegistrySyncEvent(Base, TimestampMixin):
    __tablename__ = "registry_sync_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    program_stage_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Registry program stage id scoping the sync",
    )
    site_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Local site (household) id",
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False, comment="1-12")
    event_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Registry event id created or adopted for this household-month",
    )
    tracked_entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    org_unit_id: Mapped[str] = mapped_column(String(255), nullable=False)
    event_date: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="YYYY-MM-DD",
    )
    last_synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "program_stage_id",
            "site_id",
            "year",
            "month",
            name="uq_registry_sync_events_scope_site_period",
        ),
        Index("ix_registry_sync_events_site_id", "site_id"),
        Index("ix_registry_sync_events_year_month", "year", "month"),
    )
