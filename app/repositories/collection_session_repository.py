"""
app/repositories/collection_session_repository.py

State updates for field collection sessions.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import update
from sqlalchemy.orm import Session

from db.models.collection_session import CollectionSession, CollectionSessionState


class CollectionSessionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def mark_submitted(self, session_ids: Sequence[int]) -> int:
        """
        Move sessions to the terminal submitted state and return the updated row count.
        """

        ids = sorted(set(session_ids))
        if not ids:
            return 0

        stmt = (
            update(CollectionSession)
            .where(CollectionSession.id.in_(ids))
            .values(state=CollectionSessionState.SUBMITTED)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)
