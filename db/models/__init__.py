"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.collection_session import CollectionSession, CollectionSessionState
from db.models.registry_cache_entry import RegistryCacheEntry, RegistryCacheType
from db.models.registry_sync_event import RegistrySyncEvent

__all__ = [
    "CollectionSession",
    "CollectionSessionState",
    "RegistryCacheEntry",
    "RegistryCacheType",
    "RegistrySyncEvent",
]
