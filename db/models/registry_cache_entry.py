"""
db/models/registry_cache_entry.py

Persistent lookup cache for registry identity resolution.
"""

from __future__ import annotations

from sqlalchemy import Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class RegistryCacheType:
    ORG_UNIT = "org_unit"
    TRACKED_ENTITY = "tracked_entity"
    ELEMENT_MAP = "element_map"


class RegistryCacheEntry(Base, TimestampMixin):
    __tablename__ = "registry_cache_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    program_stage_id: Mapped[str] = mapped_column(String(255), nullable=False)
    cache_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="org_unit, tracked_entity, element_map",
    )
    cache_key: Mapped[str] = mapped_column(String(500), nullable=False)
    cache_value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="JSON-serialized payload",
    )

    __table_args__ = (
        UniqueConstraint(
            "program_stage_id",
            "cache_type",
            "cache_key",
            name="uq_registry_cache_entries_scope_type_key",
        ),
    )
