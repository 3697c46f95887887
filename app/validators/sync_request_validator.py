"""
app/validators/sync_request_validator.py

Batch-level validation of registry sync requests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from app.config import SyncSettings
from app.domain.registry_sync import SyncRequest


@dataclass(frozen=True)
class SyncRequestErrorDetail:
    """
    Structured sync request error detail.
    """

    code: str
    message: str
    field: str | None = None


class SyncRequestValidationError(ValueError):
    """
    Raised when a sync request must be rejected before any household is processed.
    """

    def __init__(self, *, message: str, errors: Sequence[SyncRequestErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "field": error.field,
                }
                for error in self.errors
            ],
        }


def validate_sync_request(request: SyncRequest, settings: SyncSettings) -> None:
    """
    Validate year, month and district; raise with every problem found.
    """

    errors: list[SyncRequestErrorDetail] = []

    if not isinstance(request.year, int) or not settings.min_year <= request.year <= settings.max_year:
        errors.append(
            SyncRequestErrorDetail(
                code="invalid_year",
                message=f"Year must be between {settings.min_year} and {settings.max_year}.",
                field="year",
            )
        )

    if not isinstance(request.month, int) or not 1 <= request.month <= 12:
        errors.append(
            SyncRequestErrorDetail(
                code="invalid_month",
                message="Month must be between 1 and 12.",
                field="month",
            )
        )

    if not request.district or not request.district.strip():
        errors.append(
            SyncRequestErrorDetail(
                code="missing_district",
                message="District is required.",
                field="district",
            )
        )

    if errors:
        raise SyncRequestValidationError(
            message="; ".join(error.message for error in errors),
            errors=errors,
        )
