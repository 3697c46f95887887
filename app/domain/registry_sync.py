"""
app/domain/registry_sync.py

Domain models for registry synchronization runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from app.domain.household import IrsOverride

DataValueType = Union[str, int, bool]


class SyncStatus:
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class ReconcileAction(str, Enum):
    """
    How a household-month was written to the registry.
    """

    UPDATE_FROM_LEDGER = "update_from_ledger"
    UPDATE_RECOVERED = "update_recovered"
    CREATE = "create"


@dataclass(frozen=True)
class DataValue:
    """
    One (data element id, value) pair of a registry event.
    """

    data_element: str
    value: DataValueType

    def to_payload(self) -> dict[str, Any]:
        return {"dataElement": self.data_element, "value": self.value}


@dataclass(frozen=True)
class EnrichedDataValue:
    """
    Data value with its element display name, for audit output.
    """

    display_name: str
    data_element_id: str
    value: DataValueType


@dataclass(frozen=True)
class TrackedEntity:
    """
    Registry tracked entity matched for a household.
    """

    entity_id: str
    org_unit_id: str
    attributes: tuple[dict[str, Any], ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TrackedEntity:
        return cls(
            entity_id=str(payload["trackedEntityInstance"]),
            org_unit_id=str(payload["orgUnit"]),
            attributes=tuple(payload.get("attributes") or ()),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "trackedEntityInstance": self.entity_id,
            "orgUnit": self.org_unit_id,
            "attributes": list(self.attributes),
        }


@dataclass(frozen=True)
class RemoteEvent:
    """
    Existing registry event found for an entity.
    """

    event_id: str
    event_date: str | None = None
    data_values: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True)
class SyncRequest:
    """
    One batch sync request for a (year, month, district) scope.
    """

    year: int
    month: int
    district: str
    dry_run: bool = False
    irs_overrides: dict[int, IrsOverride] = field(default_factory=dict)


@dataclass(frozen=True)
class HouseholdSyncResult:
    """
    Per-household outcome of a sync run.
    """

    site_id: int
    house_number: str | None
    health_center: str | None
    status: str
    message: str
    tracked_entity_id: str | None = None
    event_id: str | None = None
    data_values_count: int | None = None
    data_values: list[EnrichedDataValue] | None = None
    action: ReconcileAction | None = None


@dataclass(frozen=True)
class SyncSummary:
    total_households: int
    successful_syncs: int
    failed_syncs: int
    skipped_households: int


@dataclass(frozen=True)
class SyncBatchResult:
    """
    Itemized result of one batch.
    """

    year: int
    month: int
    dry_run: bool
    summary: SyncSummary
    results: list[HouseholdSyncResult]
    success: bool = True
