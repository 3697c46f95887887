"""
app/services package marker.
"""

from app.services.household_aggregation import event_date_for, latest_session, tally_specimens
from app.services.registry_sync_service import (
    ElementMapUnavailableError,
    RegistrySyncService,
    get_registry_sync_service,
)

__all__ = [
    "ElementMapUnavailableError",
    "RegistrySyncService",
    "event_date_for",
    "get_registry_sync_service",
    "latest_session",
    "tally_specimens",
]
