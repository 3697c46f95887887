"""
app/repositories/lookup_cache_repository.py

Persistence helpers for registry lookup cache entries.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.registry_cache_entry import RegistryCacheEntry


class LookupCacheRepository:
    """
    Repository for (program stage, cache type, cache key) entries.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_entry(
        self,
        *,
        program_stage_id: str,
        cache_type: str,
        cache_key: str,
    ) -> RegistryCacheEntry | None:
        stmt = select(RegistryCacheEntry).where(
            RegistryCacheEntry.program_stage_id == program_stage_id,
            RegistryCacheEntry.cache_type == cache_type,
            RegistryCacheEntry.cache_key == cache_key,
        )
        return self._session.execute(stmt).scalars().first()

    def get_value(
        self,
        *,
        program_stage_id: str,
        cache_type: str,
        cache_key: str,
    ) -> str | None:
        entry = self.get_entry(
            program_stage_id=program_stage_id,
            cache_type=cache_type,
            cache_key=cache_key,
        )
        return entry.cache_value if entry is not None else None

    def upsert_value(
        self,
        *,
        program_stage_id: str,
        cache_type: str,
        cache_key: str,
        cache_value: str,
    ) -> RegistryCacheEntry:
        """
        Insert or overwrite the entry keyed by (program_stage_id, cache_type, cache_key).
        """

        existing = self.get_entry(
            program_stage_id=program_stage_id,
            cache_type=cache_type,
            cache_key=cache_key,
        )
        if existing is None:
            existing = RegistryCacheEntry(
                program_stage_id=program_stage_id,
                cache_type=cache_type,
                cache_key=cache_key,
                cache_value=cache_value,
            )
            self._session.add(existing)
        else:
            existing.cache_value = cache_value

        self._session.flush()
        return existing
