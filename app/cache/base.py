"""
Lookup cache port for registry identity resolution.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from db.models.registry_cache_entry import RegistryCacheType


class CacheKind:
    ORG_UNIT = RegistryCacheType.ORG_UNIT
    TRACKED_ENTITY = RegistryCacheType.TRACKED_ENTITY
    ELEMENT_MAP = RegistryCacheType.ELEMENT_MAP


class LookupCache(ABC):
    """
    Key/value cache scoped by (registry scope id, kind, key).

    Implementations must never raise: a failed read returns None and a
    failed write is dropped, so callers fall back to a remote lookup.
    """

    @abstractmethod
    def get(self, scope: str, kind: str, key: str) -> Any | None:
        """
        Return the cached JSON-compatible value, or None when absent.
        """

    @abstractmethod
    def set(self, scope: str, kind: str, key: str, value: Any) -> None:
        """
        Insert or overwrite the value for (scope, kind, key).
        """


class NullLookupCache(LookupCache):
    """
    Cache that never stores anything.
    """

    def get(self, scope: str, kind: str, key: str) -> Any | None:
        return None

    def set(self, scope: str, kind: str, key: str, value: Any) -> None:
        return None
