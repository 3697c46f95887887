"""
app/domain package marker.
"""

from app.domain.household import (
    CollectionSessionData,
    HouseholdBundle,
    IrsOverride,
    SiteInfo,
    SpecimenCounts,
    SpecimenObservation,
    SurveillanceFormSnapshot,
)
from app.domain.registry_sync import (
    DataValue,
    EnrichedDataValue,
    HouseholdSyncResult,
    ReconcileAction,
    RemoteEvent,
    SyncBatchResult,
    SyncRequest,
    SyncStatus,
    SyncSummary,
    TrackedEntity,
)

__all__ = [
    "CollectionSessionData",
    "DataValue",
    "EnrichedDataValue",
    "HouseholdBundle",
    "HouseholdSyncResult",
    "IrsOverride",
    "ReconcileAction",
    "RemoteEvent",
    "SiteInfo",
    "SpecimenCounts",
    "SpecimenObservation",
    "SurveillanceFormSnapshot",
    "SyncBatchResult",
    "SyncRequest",
    "SyncStatus",
    "SyncSummary",
    "TrackedEntity",
]
