"""
app/schemas/registry_sync.py

Request and response schemas for registry sync.

Field names are camelCase on the wire and snake_case in Python.
"""

from __future__ import annotations

from dataclasses import fields as dataclass_fields
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domain.household import (
    CollectionSessionData,
    HouseholdBundle,
    IrsOverride,
    SiteInfo,
    SpecimenCounts,
    SpecimenObservation,
    SurveillanceFormSnapshot,
)
from app.domain.registry_sync import HouseholdSyncResult, SyncBatchResult
from app.services.household_aggregation import tally_specimens


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class IrsOverrideRequest(CamelModel):
    site_id: int
    was_irs_sprayed: bool | None = None
    insecticide_sprayed: str | None = None
    date_last_sprayed: str | None = None


class SiteInfoPayload(CamelModel):
    site_id: int
    house_number: str | None = None
    health_center: str | None = None
    district: str | None = None


class CollectionSessionPayload(CamelModel):
    session_id: int
    collection_date: str | None = None
    collector_name: str | None = None
    collector_title: str | None = None
    collection_method: str | None = None


class SurveillanceFormPayload(CamelModel):
    num_people_slept_in_house: int | None = Field(default=None, ge=0)
    was_irs_conducted: bool | None = None
    months_since_irs: int | None = Field(default=None, ge=0)
    num_llins_available: int | None = Field(default=None, ge=0)
    num_people_slept_under_llin: int | None = Field(default=None, ge=0)
    llin_type: str | None = None
    llin_brand: str | None = None


class SpecimenCountsPayload(CamelModel):
    an_gambiae_fed: int = Field(default=0, ge=0)
    an_gambiae_unfed: int = Field(default=0, ge=0)
    an_gambiae_gravid: int = Field(default=0, ge=0)
    an_gambiae_half_gravid: int = Field(default=0, ge=0)
    an_gambiae_present: bool = False

    an_funestus_fed: int = Field(default=0, ge=0)
    an_funestus_unfed: int = Field(default=0, ge=0)
    an_funestus_gravid: int = Field(default=0, ge=0)
    an_funestus_half_gravid: int = Field(default=0, ge=0)
    an_funestus_present: bool = False

    an_other_fed: int = Field(default=0, ge=0)
    an_other_unfed: int = Field(default=0, ge=0)
    an_other_gravid: int = Field(default=0, ge=0)
    an_other_half_gravid: int = Field(default=0, ge=0)
    an_other_present: bool = False

    culex_female: int = Field(default=0, ge=0)
    culex_male: int = Field(default=0, ge=0)
    culex_present: bool = False

    aedes_female: int = Field(default=0, ge=0)
    aedes_male: int = Field(default=0, ge=0)
    aedes_present: bool = False

    other_culicines_female: int = Field(default=0, ge=0)
    other_culicines_male: int = Field(default=0, ge=0)
    other_culicines_present: bool = False

    male_anopheles: int = Field(default=0, ge=0)


class SpecimenObservationPayload(CamelModel):
    species: str | None = None
    sex: str | None = None
    abdomen_status: str | None = None


class HouseholdBundlePayload(CamelModel):
    """
    One household-month. Either pre-tallied specimenCounts or raw specimens
    may be supplied; specimenCounts wins when both are present.
    """

    site: SiteInfoPayload
    sessions: list[CollectionSessionPayload] = Field(default_factory=list)
    surveillance_form: SurveillanceFormPayload | None = None
    specimen_counts: SpecimenCountsPayload | None = None
    specimens: list[SpecimenObservationPayload] = Field(default_factory=list)


class RegistrySyncRequestBody(CamelModel):
    irs_data: list[IrsOverrideRequest] = Field(default_factory=list)
    households: list[HouseholdBundlePayload] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


class EnrichedDataValueResponse(CamelModel):
    display_name: str
    data_element_id: str
    value: bool | int | str


class HouseholdSyncResultResponse(CamelModel):
    site_id: int
    house_number: str | None = None
    health_center: str | None = None
    status: str
    message: str
    tracked_entity_id: str | None = Field(default=None, alias="teiId")
    event_id: str | None = None
    data_values_count: int | None = None
    data_values: list[EnrichedDataValueResponse] | None = None
    action: str | None = None


class SyncSummaryResponse(CamelModel):
    total_households: int = Field(..., ge=0)
    successful_syncs: int = Field(..., ge=0)
    failed_syncs: int = Field(..., ge=0)
    skipped_households: int = Field(..., ge=0)


class RegistrySyncResponse(CamelModel):
    success: bool
    year: int
    month: int
    dry_run: bool
    summary: SyncSummaryResponse
    results: list[HouseholdSyncResultResponse] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    details: list[dict[str, str | None]] | None = None


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

_SPECIMEN_COUNT_FIELDS = tuple(field.name for field in dataclass_fields(SpecimenCounts))


def to_irs_overrides(items: list[IrsOverrideRequest]) -> dict[int, IrsOverride]:
    """
    Index overrides by site id; a later entry for the same site wins.
    """

    return {
        item.site_id: IrsOverride(
            site_id=item.site_id,
            was_irs_sprayed=item.was_irs_sprayed,
            insecticide_sprayed=item.insecticide_sprayed or None,
            date_last_sprayed=item.date_last_sprayed or None,
        )
        for item in items
    }


def to_household_bundle(payload: HouseholdBundlePayload) -> HouseholdBundle:
    if payload.specimen_counts is not None:
        counts_data = payload.specimen_counts.model_dump(by_alias=False)
        specimen_counts = SpecimenCounts(**{name: counts_data[name] for name in _SPECIMEN_COUNT_FIELDS})
    else:
        specimen_counts = tally_specimens(
            SpecimenObservation(
                species=specimen.species,
                sex=specimen.sex,
                abdomen_status=specimen.abdomen_status,
            )
            for specimen in payload.specimens
        )

    form = payload.surveillance_form
    return HouseholdBundle(
        site=SiteInfo(
            site_id=payload.site.site_id,
            house_number=payload.site.house_number,
            health_center=payload.site.health_center,
            district=payload.site.district,
        ),
        sessions=tuple(
            CollectionSessionData(
                session_id=session.session_id,
                collection_date=session.collection_date,
                collector_name=session.collector_name,
                collector_title=session.collector_title,
                collection_method=session.collection_method,
            )
            for session in payload.sessions
        ),
        surveillance_form=(
            SurveillanceFormSnapshot(**form.model_dump(by_alias=False)) if form is not None else None
        ),
        specimen_counts=specimen_counts,
    )


def _to_result_response(result: HouseholdSyncResult) -> HouseholdSyncResultResponse:
    """
    Lookup keys are always set, null or not; the rest only when the outcome produced them.

    Responses are dumped with exclude_unset, so unset optionals stay off the wire.
    """

    payload: dict[str, Any] = {
        "site_id": result.site_id,
        "house_number": result.house_number,
        "health_center": result.health_center,
        "status": result.status,
        "message": result.message,
    }
    if result.tracked_entity_id is not None:
        payload["tracked_entity_id"] = result.tracked_entity_id
    if result.event_id is not None:
        payload["event_id"] = result.event_id
    if result.data_values_count is not None:
        payload["data_values_count"] = result.data_values_count
    if result.data_values is not None:
        payload["data_values"] = [
            EnrichedDataValueResponse(
                display_name=value.display_name,
                data_element_id=value.data_element_id,
                value=value.value,
            )
            for value in result.data_values
        ]
    if result.action is not None:
        payload["action"] = result.action.value
    return HouseholdSyncResultResponse(**payload)


def to_sync_response(batch: SyncBatchResult) -> RegistrySyncResponse:
    return RegistrySyncResponse(
        success=batch.success,
        year=batch.year,
        month=batch.month,
        dry_run=batch.dry_run,
        summary=SyncSummaryResponse(
            total_households=batch.summary.total_households,
            successful_syncs=batch.summary.successful_syncs,
            failed_syncs=batch.summary.failed_syncs,
            skipped_households=batch.summary.skipped_households,
        ),
        results=[_to_result_response(result) for result in batch.results],
    )
