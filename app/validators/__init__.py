"""
app/validators package marker.
"""

from app.validators.sync_request_validator import (
    SyncRequestErrorDetail,
    SyncRequestValidationError,
    validate_sync_request,
)

__all__ = [
    "SyncRequestErrorDetail",
    "SyncRequestValidationError",
    "validate_sync_request",
]
