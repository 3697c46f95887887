"""
app/repositories package marker.
"""

from app.repositories.collection_session_repository import CollectionSessionRepository
from app.repositories.lookup_cache_repository import LookupCacheRepository
from app.repositories.sync_ledger_repository import SyncLedgerRepository

__all__ = [
    "CollectionSessionRepository",
    "LookupCacheRepository",
    "SyncLedgerRepository",
]
