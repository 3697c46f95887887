"""
app/schemas package marker.
"""

from app.schemas.registry_sync import (
    HouseholdBundlePayload,
    IrsOverrideRequest,
    RegistrySyncRequestBody,
    RegistrySyncResponse,
)

__all__ = [
    "HouseholdBundlePayload",
    "IrsOverrideRequest",
    "RegistrySyncRequestBody",
    "RegistrySyncResponse",
]
