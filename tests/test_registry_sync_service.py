"""
tests/test_registry_sync_service.py

Sync orchestrator end to end: real client, repositories and models against
an in-process fake registry and in-memory SQLite.

Coverage
--------
- Idempotent re-runs
- Orphaned event recovery after ledger loss
- Dry-run purity
- Partial failure isolation
- Ledger uniqueness violations surface as failed results
- Sessions marked submitted only after a successful write
- Batch-level validation and element map failures
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, delete, func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.config import SyncSettings
from app.connectors import RegistryClient
from app.domain.household import (
    CollectionSessionData,
    HouseholdBundle,
    IrsOverride,
    SiteInfo,
    SpecimenCounts,
    SurveillanceFormSnapshot,
)
from app.domain.registry_sync import ReconcileAction, RemoteEvent, SyncRequest, SyncStatus
from app.mappers.registry_event_mapper import ElementName, map_to_data_values
from app.repositories.sync_ledger_repository import SyncLedgerRepository
from app.services.registry_sync_service import (
    ElementMapUnavailableError,
    RegistrySyncService,
    choose_reconcile_action,
)
from app.validators.sync_request_validator import SyncRequestValidationError
from db.base import Base
from db.models import CollectionSession, CollectionSessionState, RegistrySyncEvent
from db.session import build_session_factory
from registry_fakes import (
    HTTP_SETTINGS,
    PROGRAM_STAGE_ID,
    REGISTRY_SETTINGS,
    DictLookupCache,
    FakeRegistrySession,
    FakeResponse,
)

ELEMENT_MAP = {
    value: f"de{index:03d}"
    for index, (name, value) in enumerate(sorted(vars(ElementName).items()))
    if name.isupper()
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = build_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def registry() -> FakeRegistrySession:
    return FakeRegistrySession(
        org_units={"Kisumu HC": "ouKisumu01"},
        entities={
            ("ouKisumu01", "H-01"): "teiH01",
            ("ouKisumu01", "H-02"): "teiH02",
        },
        data_elements=ELEMENT_MAP,
    )


@pytest.fixture()
def service(registry: FakeRegistrySession) -> RegistrySyncService:
    client = RegistryClient(
        settings=REGISTRY_SETTINGS,
        http_settings=HTTP_SETTINGS,
        cache=DictLookupCache(),
        session=registry,
        sleep=lambda _seconds: None,
    )
    return RegistrySyncService(client=client, sync_settings=SyncSettings())


def _bundle(
    site_id: int,
    house_number: str | None,
    *session_ids: int,
    health_center: str | None = "Kisumu HC",
) -> HouseholdBundle:
    return HouseholdBundle(
        site=SiteInfo(site_id=site_id, house_number=house_number, health_center=health_center),
        sessions=tuple(
            CollectionSessionData(
                session_id=session_id,
                collection_date=datetime(2026, 3, 10 + index, 8, 0, tzinfo=timezone.utc),
                collector_name="Jane Mwangi",
                collection_method="PSC",
            )
            for index, session_id in enumerate(session_ids)
        ),
        surveillance_form=SurveillanceFormSnapshot(
            num_people_slept_in_house=4,
            was_irs_conducted=True,
            months_since_irs=2,
            llin_type="Pyrethroid + PBO",
            llin_brand="Olyset Plus",
        ),
        specimen_counts=SpecimenCounts(an_gambiae_fed=3, an_gambiae_present=True, culex_female=1, culex_present=True),
    )


def _add_sessions(db: Session, site_id: int, *session_ids: int) -> None:
    for session_id in session_ids:
        db.add(CollectionSession(id=session_id, site_id=site_id, state=CollectionSessionState.COMPLETED))
    db.commit()


def _ledger_rows(db: Session) -> list[RegistrySyncEvent]:
    return list(db.execute(select(RegistrySyncEvent)).scalars().all())


def _ledger_count(db: Session, site_id: int) -> int:
    return SyncLedgerRepository(db).count_for_site(program_stage_id=PROGRAM_STAGE_ID, site_id=site_id)


def _request(**overrides) -> SyncRequest:
    values = {"year": 2026, "month": 3, "district": "Kisumu"}
    values.update(overrides)
    return SyncRequest(**values)


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


def test_first_sync_creates_event_and_ledger_row(db, registry, service) -> None:
    _add_sessions(db, 1, 11, 12)

    batch = service.sync(db=db, request=_request(), bundles=[_bundle(1, "H-01", 11, 12)])

    result = batch.results[0]
    assert result.status == SyncStatus.SUCCESS
    assert result.action is ReconcileAction.CREATE
    assert result.tracked_entity_id == "teiH01"
    assert result.event_id == "evt0001"

    created = registry.events["evt0001"]
    assert created["program"] == REGISTRY_SETTINGS.program_id
    assert created["programStage"] == PROGRAM_STAGE_ID
    assert created["orgUnit"] == "ouKisumu01"
    assert created["status"] == "COMPLETED"
    assert created["eventDate"] == "2026-03-11"
    assert len(created["dataValues"]) == result.data_values_count

    (row,) = _ledger_rows(db)
    assert (row.site_id, row.year, row.month, row.event_id) == (1, 2026, 3, "evt0001")
    assert row.program_stage_id == PROGRAM_STAGE_ID
    assert row.event_date == "2026-03-11"


def test_rerun_is_idempotent(db, registry, service) -> None:
    _add_sessions(db, 1, 11)
    bundle = _bundle(1, "H-01", 11)

    first = service.sync(db=db, request=_request(), bundles=[bundle]).results[0]
    second = service.sync(db=db, request=_request(), bundles=[bundle]).results[0]

    assert first.event_id == second.event_id
    assert second.action is ReconcileAction.UPDATE_FROM_LEDGER
    assert _ledger_count(db, 1) == 1
    assert len(registry.calls_to("POST", "events")) == 1
    assert len(registry.calls_to("PUT", f"events/{first.event_id}")) == 1
    assert list(registry.events) == [first.event_id]


def test_orphaned_remote_event_is_adopted(db, registry, service) -> None:
    _add_sessions(db, 1, 11)
    bundle = _bundle(1, "H-01", 11)
    first = service.sync(db=db, request=_request(), bundles=[bundle]).results[0]

    db.execute(delete(RegistrySyncEvent))
    db.commit()

    recovered = service.sync(db=db, request=_request(), bundles=[bundle]).results[0]

    assert recovered.status == SyncStatus.SUCCESS
    assert recovered.action is ReconcileAction.UPDATE_RECOVERED
    assert recovered.event_id == first.event_id
    assert len(registry.calls_to("POST", "events")) == 1
    assert len(registry.events) == 1

    assert _ledger_count(db, 1) == 1
    (row,) = _ledger_rows(db)
    assert row.event_id == first.event_id

    lookup = registry.calls_to("GET", "events.json")[-1]
    assert (lookup["params"]["startDate"], lookup["params"]["endDate"]) == ("2026-03-01", "2026-03-31")


def test_choose_reconcile_action_covers_each_branch() -> None:
    entry = RegistrySyncEvent(event_id="evtA")

    remote = RemoteEvent(event_id="evtB")
    assert choose_reconcile_action(entry, remote) is ReconcileAction.UPDATE_FROM_LEDGER
    assert choose_reconcile_action(entry, None) is ReconcileAction.UPDATE_FROM_LEDGER
    assert choose_reconcile_action(None, remote) is ReconcileAction.UPDATE_RECOVERED
    assert choose_reconcile_action(None, None) is ReconcileAction.CREATE


def test_create_without_returned_id_succeeds_without_ledger_row(db, registry, service) -> None:
    registry.queued["events"] = [FakeResponse(200, {"httpStatus": "OK", "response": {"importSummaries": []}})]

    result = service.sync(db=db, request=_request(), bundles=[_bundle(1, "H-01")]).results[0]

    assert result.status == SyncStatus.SUCCESS
    assert result.event_id is None
    assert _ledger_rows(db) == []


# ---------------------------------------------------------------------------
# Dry run
# ---------------------------------------------------------------------------


def test_dry_run_never_writes(db, registry, service) -> None:
    _add_sessions(db, 1, 11)
    bundle = _bundle(1, "H-01", 11)

    batch = service.sync(db=db, request=_request(dry_run=True), bundles=[bundle])

    result = batch.results[0]
    assert batch.dry_run is True
    assert result.status == SyncStatus.SUCCESS
    assert registry.write_calls() == []
    assert registry.calls_to("GET", "trackedEntityInstances.json") == []
    assert _ledger_rows(db) == []
    assert db.get(CollectionSession, 11).state == CollectionSessionState.COMPLETED

    expected = map_to_data_values(
        bundle.sessions[0],
        bundle.surveillance_form,
        bundle.specimen_counts,
        ELEMENT_MAP,
    )
    assert result.data_values_count == len(expected)

    real = service.sync(db=db, request=_request(), bundles=[bundle]).results[0]
    assert real.data_values_count == result.data_values_count


# ---------------------------------------------------------------------------
# Skips and failures
# ---------------------------------------------------------------------------


def test_partial_failure_does_not_stop_the_batch(db, registry, service) -> None:
    registry.failing_houses.add("H-01")

    batch = service.sync(
        db=db,
        request=_request(),
        bundles=[_bundle(1, "H-01"), _bundle(2, "H-02")],
    )

    failed, succeeded = batch.results
    assert failed.status == SyncStatus.FAILED
    assert "HTTP 500" in failed.message
    assert succeeded.status == SyncStatus.SUCCESS
    assert batch.summary.total_households == 2
    assert batch.summary.failed_syncs == 1
    assert batch.summary.successful_syncs == 1
    assert [row.site_id for row in _ledger_rows(db)] == [2]


def test_households_missing_lookup_keys_or_entity_are_skipped(db, registry, service) -> None:
    batch = service.sync(
        db=db,
        request=_request(),
        bundles=[
            _bundle(1, None),
            _bundle(2, "H-02", health_center="  "),
            _bundle(3, "H-99"),
        ],
    )

    statuses = [result.status for result in batch.results]
    assert statuses == [SyncStatus.SKIPPED, SyncStatus.SKIPPED, SyncStatus.SKIPPED]
    assert batch.results[0].message == "Missing house number"
    assert batch.results[1].message == "Missing health center"
    assert "H-99" in batch.results[2].message
    assert batch.summary.skipped_households == 3
    assert registry.write_calls() == []


def test_ledger_event_id_collision_becomes_failed_result(db, registry, service) -> None:
    _add_sessions(db, 1, 11)
    db.add(
        RegistrySyncEvent(
            program_stage_id=PROGRAM_STAGE_ID,
            site_id=99,
            year=2026,
            month=3,
            event_id=registry.next_event_id(),
            tracked_entity_id="teiOther",
            org_unit_id="ouKisumu01",
            event_date="2026-03-01",
            last_synced_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
        )
    )
    db.commit()

    result = service.sync(db=db, request=_request(), bundles=[_bundle(1, "H-01", 11)]).results[0]

    assert result.status == SyncStatus.FAILED
    assert [row.site_id for row in _ledger_rows(db)] == [99]
    assert db.get(CollectionSession, 11).state == CollectionSessionState.COMPLETED


def test_concurrent_ledger_row_for_same_household_month_becomes_failed_result(
    db,
    registry,
    service,
    monkeypatch,
) -> None:
    _add_sessions(db, 1, 11)

    def _no_remote_event_but_rival_commits(self, entity_id, event_date, *, end_date=None):
        db.add(
            RegistrySyncEvent(
                program_stage_id=PROGRAM_STAGE_ID,
                site_id=1,
                year=2026,
                month=3,
                event_id="evtRival",
                tracked_entity_id=entity_id,
                org_unit_id="ouKisumu01",
                event_date="2026-03-02",
                last_synced_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
            )
        )
        db.commit()
        return None

    monkeypatch.setattr(RegistryClient, "get_existing_event", _no_remote_event_but_rival_commits)

    result = service.sync(db=db, request=_request(), bundles=[_bundle(1, "H-01", 11)]).results[0]

    assert result.status == SyncStatus.FAILED
    assert result.event_id is None
    assert _ledger_count(db, 1) == 1
    (row,) = _ledger_rows(db)
    assert row.event_id == "evtRival"
    assert db.get(CollectionSession, 11).state == CollectionSessionState.COMPLETED


def test_failed_update_leaves_sessions_unsubmitted(db, registry, service) -> None:
    _add_sessions(db, 1, 11)
    bundle = _bundle(1, "H-01", 11)
    first = service.sync(db=db, request=_request(), bundles=[bundle]).results[0]
    db.execute(update(CollectionSession).values(state=CollectionSessionState.COMPLETED))
    db.commit()

    registry.failing_paths[f"events/{first.event_id}"] = 409
    result = service.sync(db=db, request=_request(), bundles=[bundle]).results[0]

    assert result.status == SyncStatus.FAILED
    db.expire_all()
    assert db.get(CollectionSession, 11).state == CollectionSessionState.COMPLETED


def test_successful_sync_marks_sessions_submitted(db, registry, service) -> None:
    _add_sessions(db, 1, 11, 12)
    _add_sessions(db, 2, 21)

    service.sync(db=db, request=_request(), bundles=[_bundle(1, "H-01", 11, 12)])

    db.expire_all()
    assert db.get(CollectionSession, 11).state == CollectionSessionState.SUBMITTED
    assert db.get(CollectionSession, 12).state == CollectionSessionState.SUBMITTED
    assert db.get(CollectionSession, 21).state == CollectionSessionState.COMPLETED


def test_irs_override_applies_to_its_site_only(db, registry, service) -> None:
    request = _request(irs_overrides={1: IrsOverride(site_id=1, was_irs_sprayed=False)})

    service.sync(db=db, request=request, bundles=[_bundle(1, "H-01"), _bundle(2, "H-02")])

    sprayed_element = ELEMENT_MAP[ElementName.SITE_SPRAYED_IN_PAST_12_MONTHS]
    values_by_entity = {
        event["trackedEntityInstance"]: {value["dataElement"]: value["value"] for value in event["dataValues"]}
        for event in registry.events.values()
    }
    assert values_by_entity["teiH01"][sprayed_element] is False
    assert values_by_entity["teiH02"][sprayed_element] is True


# ---------------------------------------------------------------------------
# Batch-level errors
# ---------------------------------------------------------------------------


def test_invalid_request_is_rejected_before_any_call(db, registry, service) -> None:
    with pytest.raises(SyncRequestValidationError):
        service.sync(db=db, request=_request(month=13), bundles=[_bundle(1, "H-01")])

    assert registry.calls == []


def test_element_map_failure_aborts_batch(db, registry, service) -> None:
    registry.failing_paths[f"programStages/{PROGRAM_STAGE_ID}.json"] = 503

    with pytest.raises(ElementMapUnavailableError):
        service.sync(db=db, request=_request(), bundles=[_bundle(1, "H-01")])

    assert registry.calls_to("GET", "trackedEntityInstances.json") == []
    assert db.execute(select(func.count()).select_from(RegistrySyncEvent)).scalar_one() == 0
