"""
app/cache package marker.
"""

from app.cache.base import CacheKind, LookupCache, NullLookupCache
from app.cache.sqlalchemy_cache import SQLAlchemyLookupCache

__all__ = [
    "CacheKind",
    "LookupCache",
    "NullLookupCache",
    "SQLAlchemyLookupCache",
]
