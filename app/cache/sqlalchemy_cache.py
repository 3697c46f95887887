"""
SQLAlchemy-backed lookup cache.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.cache.base import LookupCache
from app.repositories.lookup_cache_repository import LookupCacheRepository

logger = logging.getLogger(__name__)


class SQLAlchemyLookupCache(LookupCache):
    """
    Persist cache entries in `registry_cache_entries`.

    Every operation runs in its own short-lived session so cache writes
    commit independently of the caller's household transaction.
    """

    def __init__(self, *, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get(self, scope: str, kind: str, key: str) -> Any | None:
        try:
            with self._session_factory() as session:
                raw = LookupCacheRepository(session).get_value(
                    program_stage_id=scope,
                    cache_type=kind,
                    cache_key=key,
                )
        except SQLAlchemyError as exc:
            logger.warning(
                "Lookup cache read failed scope=%s kind=%s key=%s error=%s",
                scope,
                kind,
                key,
                exc,
            )
            return None

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            logger.warning(
                "Lookup cache entry is not valid JSON scope=%s kind=%s key=%s error=%s",
                scope,
                kind,
                key,
                exc,
            )
            return None

    def set(self, scope: str, kind: str, key: str, value: Any) -> None:
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as exc:
            logger.warning("Lookup cache value not serializable kind=%s key=%s error=%s", kind, key, exc)
            return

        session = self._session_factory()
        try:
            LookupCacheRepository(session).upsert_value(
                program_stage_id=scope,
                cache_type=kind,
                cache_key=key,
                cache_value=serialized,
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning(
                "Lookup cache write failed scope=%s kind=%s key=%s error=%s",
                scope,
                kind,
                key,
                exc,
            )
        finally:
            session.close()
