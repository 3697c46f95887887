"""
app/repositories/sync_ledger_repository.py

Persistence for the registry sync ledger.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.registry_sync_event import RegistrySyncEvent


class SyncLedgerRepository:
    """
    Records which household-months already have a registry event.

    Rows are created on the first successful sync and only their
    last_synced_at changes afterwards; nothing here deletes rows.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def find(
        self,
        *,
        program_stage_id: str,
        site_id: int,
        year: int,
        month: int,
    ) -> RegistrySyncEvent | None:
        stmt = select(RegistrySyncEvent).where(
            RegistrySyncEvent.program_stage_id == program_stage_id,
            RegistrySyncEvent.site_id == site_id,
            RegistrySyncEvent.year == year,
            RegistrySyncEvent.month == month,
        )
        return self._session.execute(stmt).scalars().first()

    def record(
        self,
        *,
        program_stage_id: str,
        site_id: int,
        year: int,
        month: int,
        event_id: str,
        tracked_entity_id: str,
        org_unit_id: str,
        event_date: str,
        synced_at: datetime | None = None,
    ) -> RegistrySyncEvent:
        """
        Insert a new ledger row.

        A concurrent insert for the same household-month surfaces as
        IntegrityError on flush; it is never merged into the other row.
        """

        entry = RegistrySyncEvent(
            program_stage_id=program_stage_id,
            site_id=site_id,
            year=year,
            month=month,
            event_id=event_id,
            tracked_entity_id=tracked_entity_id,
            org_unit_id=org_unit_id,
            event_date=event_date,
            last_synced_at=synced_at or datetime.now(timezone.utc),
        )
        self._session.add(entry)
        self._session.flush()
        return entry

    def touch(self, entry: RegistrySyncEvent, *, synced_at: datetime | None = None) -> RegistrySyncEvent:
        entry.last_synced_at = synced_at or datetime.now(timezone.utc)
        self._session.flush()
        return entry

    def count_for_site(self, *, program_stage_id: str, site_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(RegistrySyncEvent)
            .where(
                RegistrySyncEvent.program_stage_id == program_stage_id,
                RegistrySyncEvent.site_id == site_id,
            )
        )
        return int(self._session.execute(stmt).scalar_one())
