"""
app/api/routers/registry_sync_router.py

Registry sync HTTP endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.domain.registry_sync import SyncRequest
from app.schemas.registry_sync import (
    ErrorResponse,
    RegistrySyncRequestBody,
    RegistrySyncResponse,
    to_household_bundle,
    to_irs_overrides,
    to_sync_response,
)
from app.services.registry_sync_service import (
    ElementMapUnavailableError,
    RegistrySyncService,
    get_registry_sync_service,
)
from app.validators.sync_request_validator import SyncRequestValidationError
from db.session import get_db

router = APIRouter(prefix="/registry", tags=["registry-sync"])


@router.post(
    "/sync",
    response_model=RegistrySyncResponse,
    response_model_exclude_unset=True,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
    },
)
def sync_registry(
    year: int = Query(..., description="Sync year"),
    month: int = Query(..., description="Sync month, 1-12"),
    district: str = Query(..., description="District the households belong to"),
    dry_run: bool = Query(default=False, alias="dryRun"),
    body: RegistrySyncRequestBody | None = Body(default=None),
    db: Session = Depends(get_db),
    sync_service: RegistrySyncService = Depends(get_registry_sync_service),
) -> RegistrySyncResponse | JSONResponse:
    """
    Push the supplied household-month bundles to the registry.

    The caller has already restricted `households` to sites the requester may act on.
    """

    body = body or RegistrySyncRequestBody()
    request = SyncRequest(
        year=year,
        month=month,
        district=district,
        dry_run=dry_run,
        irs_overrides=to_irs_overrides(body.irs_data),
    )
    bundles = [to_household_bundle(household) for household in body.households]

    try:
        batch = sync_service.sync(db=db, request=request, bundles=bundles)
    except SyncRequestValidationError as exc:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": exc.message, "details": exc.to_dict()["errors"]},
        )
    except ElementMapUnavailableError as exc:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": str(exc)},
        )

    return to_sync_response(batch)
