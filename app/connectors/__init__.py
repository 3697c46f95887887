"""
app/connectors package marker.
"""

from app.connectors.base import BaseConnector, RegistryRequestError
from app.connectors.registry_client import (
    RegistryClient,
    RegistryConfigurationError,
    created_event_id,
    tracked_entity_cache_key,
)

__all__ = [
    "BaseConnector",
    "RegistryClient",
    "RegistryConfigurationError",
    "RegistryRequestError",
    "created_event_id",
    "tracked_entity_cache_key",
]
