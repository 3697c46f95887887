"""
app/services/registry_sync_service.py

Sync orchestrator: pushes household-month bundles to the registry.

Per household the flow is

    validate -> (dry-run report | resolve entity) -> reconcile -> persist

and every household ends as success, skipped or failed. Only request
validation and a missing element map abort the whole batch; anything that
goes wrong for a single household is recorded in its result and the batch
moves on.

Reconciliation
--------------
The local ledger row for (program stage, site, year, month) is looked up
first. Without one, the registry is asked for an event of the entity in
the sync month so an event created by a lost ledger row or an out-of-band
sync is adopted instead of duplicated:

    ledger row          -> update that event, bump last_synced_at
    no row, remote hit  -> update the remote event, write a ledger row
    no row, no remote   -> create an event, write a ledger row if an id came back

Each household runs in its own transaction on the caller's session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Sequence

from sqlalchemy.orm import Session

from app.cache import SQLAlchemyLookupCache
from app.config import SyncSettings, get_registry_http_settings, get_registry_settings, get_sync_settings
from app.connectors import RegistryClient, RegistryRequestError, created_event_id
from app.domain.household import HouseholdBundle
from app.domain.registry_sync import (
    DataValue,
    HouseholdSyncResult,
    ReconcileAction,
    RemoteEvent,
    SyncBatchResult,
    SyncRequest,
    SyncStatus,
    SyncSummary,
    TrackedEntity,
)
from app.logging_utils import log_event
from app.mappers.registry_event_mapper import enrich_data_values, map_to_data_values
from app.repositories.collection_session_repository import CollectionSessionRepository
from app.repositories.sync_ledger_repository import SyncLedgerRepository
from app.services.household_aggregation import event_date_for, latest_session, month_window
from app.validators.sync_request_validator import validate_sync_request
from db.models.registry_sync_event import RegistrySyncEvent
from db.session import get_session_factory

logger = logging.getLogger(__name__)


class ElementMapUnavailableError(RuntimeError):
    """
    Raised when the data element map cannot be loaded; no household can be mapped without it.
    """


@dataclass(frozen=True)
class ReconcileOutcome:
    action: ReconcileAction
    event_id: str | None
    ledger_written: bool


def choose_reconcile_action(
    ledger_entry: RegistrySyncEvent | None,
    remote_event: RemoteEvent | None,
) -> ReconcileAction:
    """
    Pick how a household-month is written given what the ledger and the registry know.
    """

    if ledger_entry is not None:
        return ReconcileAction.UPDATE_FROM_LEDGER
    if remote_event is not None:
        return ReconcileAction.UPDATE_RECOVERED
    return ReconcileAction.CREATE


_SUCCESS_MESSAGES = {
    ReconcileAction.UPDATE_FROM_LEDGER: "Updated existing event",
    ReconcileAction.UPDATE_RECOVERED: "Recovered and updated orphaned event",
    ReconcileAction.CREATE: "Created new event",
}


class RegistrySyncService:
    """
    Runs sync batches against one registry program stage.
    """

    def __init__(
        self,
        *,
        client: RegistryClient,
        sync_settings: SyncSettings,
    ) -> None:
        self._client = client
        self._sync_settings = sync_settings

    @property
    def program_stage_id(self) -> str:
        return self._client.program_stage_id

    def sync(
        self,
        *,
        db: Session,
        request: SyncRequest,
        bundles: Sequence[HouseholdBundle],
    ) -> SyncBatchResult:
        """
        Sync every bundle and return the itemized batch result.

        Raises SyncRequestValidationError for a bad request and
        ElementMapUnavailableError when the element map cannot be loaded.
        """

        validate_sync_request(request, self._sync_settings)
        element_map = self._load_element_map()

        log_event(
            logger,
            logging.INFO,
            "registry_sync.batch_started",
            year=request.year,
            month=request.month,
            district=request.district,
            dry_run=request.dry_run,
            households=len(bundles),
        )

        results: list[HouseholdSyncResult] = []
        for bundle in bundles:
            result = self._sync_household(db=db, request=request, bundle=bundle, element_map=element_map)
            results.append(result)
            log_event(
                logger,
                logging.ERROR if result.status == SyncStatus.FAILED else logging.INFO,
                "registry_sync.household",
                site_id=result.site_id,
                status=result.status,
                action=result.action.value if result.action else None,
                event_id=result.event_id,
                message=result.message,
            )

        summary = SyncSummary(
            total_households=len(results),
            successful_syncs=sum(1 for result in results if result.status == SyncStatus.SUCCESS),
            failed_syncs=sum(1 for result in results if result.status == SyncStatus.FAILED),
            skipped_households=sum(1 for result in results if result.status == SyncStatus.SKIPPED),
        )
        log_event(
            logger,
            logging.INFO,
            "registry_sync.batch_finished",
            year=request.year,
            month=request.month,
            dry_run=request.dry_run,
            total=summary.total_households,
            succeeded=summary.successful_syncs,
            failed=summary.failed_syncs,
            skipped=summary.skipped_households,
        )
        return SyncBatchResult(
            year=request.year,
            month=request.month,
            dry_run=request.dry_run,
            summary=summary,
            results=results,
        )

    def _load_element_map(self) -> dict[str, str]:
        try:
            element_map = self._client.fetch_element_map()
        except RegistryRequestError as exc:
            logger.error("Element map fetch failed program_stage=%s error=%s", self.program_stage_id, exc)
            raise ElementMapUnavailableError(f"Failed to load data element map: {exc}") from exc
        if not element_map:
            raise ElementMapUnavailableError(
                f"Program stage {self.program_stage_id} has no data elements configured."
            )
        return element_map

    def _sync_household(
        self,
        *,
        db: Session,
        request: SyncRequest,
        bundle: HouseholdBundle,
        element_map: dict[str, str],
    ) -> HouseholdSyncResult:
        site = bundle.site
        health_center = (site.health_center or "").strip()
        house_number = (site.house_number or "").strip()

        base = {
            "site_id": site.site_id,
            "house_number": site.house_number,
            "health_center": site.health_center,
        }

        if not health_center or not house_number:
            missing = "health center" if not health_center else "house number"
            logger.info("Skipping household without %s site_id=%s", missing, site.site_id)
            return HouseholdSyncResult(
                **base,
                status=SyncStatus.SKIPPED,
                message=f"Missing {missing}",
            )

        try:
            data_values = map_to_data_values(
                latest_session(bundle.sessions),
                bundle.surveillance_form,
                bundle.specimen_counts,
                element_map,
                request.irs_overrides.get(site.site_id),
            )
            enriched = enrich_data_values(data_values, element_map)

            if request.dry_run:
                return HouseholdSyncResult(
                    **base,
                    status=SyncStatus.SUCCESS,
                    message=f"Dry run: would sync {len(data_values)} data values",
                    data_values_count=len(data_values),
                    data_values=enriched,
                )

            entity = self._client.search_tracked_entity(health_center, house_number)
            if entity is None:
                logger.info(
                    "No tracked entity site_id=%s health_center=%s house_number=%s",
                    site.site_id,
                    health_center,
                    house_number,
                )
                return HouseholdSyncResult(
                    **base,
                    status=SyncStatus.SKIPPED,
                    message=f"No matching tracked entity for house {house_number} in {health_center}",
                )

            event_date = event_date_for(bundle, request.year, request.month)
            outcome = self._reconcile(
                db=db,
                request=request,
                site_id=site.site_id,
                entity=entity,
                event_date=event_date,
                data_values=data_values,
            )
            CollectionSessionRepository(db).mark_submitted([session.session_id for session in bundle.sessions])
            db.commit()
        except Exception as exc:
            db.rollback()
            logger.exception("Household sync failed site_id=%s error=%s", site.site_id, exc)
            return HouseholdSyncResult(
                **base,
                status=SyncStatus.FAILED,
                message=str(exc) or exc.__class__.__name__,
            )

        message = _SUCCESS_MESSAGES[outcome.action]
        if not outcome.ledger_written:
            message += " (registry returned no event id; not recorded locally)"
        return HouseholdSyncResult(
            **base,
            status=SyncStatus.SUCCESS,
            message=message,
            tracked_entity_id=entity.entity_id,
            event_id=outcome.event_id,
            data_values_count=len(data_values),
            data_values=enriched,
            action=outcome.action,
        )

    def _reconcile(
        self,
        *,
        db: Session,
        request: SyncRequest,
        site_id: int,
        entity: TrackedEntity,
        event_date: str,
        data_values: Sequence[DataValue],
    ) -> ReconcileOutcome:
        ledger = SyncLedgerRepository(db)
        scope = self.program_stage_id
        synced_at = datetime.now(timezone.utc)

        ledger_entry = ledger.find(
            program_stage_id=scope,
            site_id=site_id,
            year=request.year,
            month=request.month,
        )
        remote_event = None
        if ledger_entry is None:
            start_date, end_date = month_window(request.year, request.month)
            remote_event = self._client.get_existing_event(entity.entity_id, start_date, end_date=end_date)

        action = choose_reconcile_action(ledger_entry, remote_event)

        if ledger_entry is not None:
            payload = self._event_payload(entity, event_date, data_values, event_id=ledger_entry.event_id)
            self._client.update_event(ledger_entry.event_id, payload)
            ledger.touch(ledger_entry, synced_at=synced_at)
            return ReconcileOutcome(action=action, event_id=ledger_entry.event_id, ledger_written=True)

        if remote_event is not None:
            logger.warning(
                "Adopting orphaned registry event site_id=%s event_id=%s",
                site_id,
                remote_event.event_id,
            )
            payload = self._event_payload(entity, event_date, data_values, event_id=remote_event.event_id)
            self._client.update_event(remote_event.event_id, payload)
            event_id = remote_event.event_id
        else:
            payload = self._event_payload(entity, event_date, data_values)
            event_id = created_event_id(self._client.create_event(payload))
            if event_id is None:
                logger.warning("Create event response had no event id site_id=%s", site_id)
                return ReconcileOutcome(action=action, event_id=None, ledger_written=False)

        ledger.record(
            program_stage_id=scope,
            site_id=site_id,
            year=request.year,
            month=request.month,
            event_id=event_id,
            tracked_entity_id=entity.entity_id,
            org_unit_id=entity.org_unit_id,
            event_date=event_date,
            synced_at=synced_at,
        )
        return ReconcileOutcome(action=action, event_id=event_id, ledger_written=True)

    def _event_payload(
        self,
        entity: TrackedEntity,
        event_date: str,
        data_values: Sequence[DataValue],
        *,
        event_id: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "program": self._client.program_id,
            "programStage": self.program_stage_id,
            "trackedEntityInstance": entity.entity_id,
            "orgUnit": entity.org_unit_id,
            "eventDate": event_date,
            "status": self._client.event_status,
            "dataValues": [value.to_payload() for value in data_values],
        }
        if event_id is not None:
            payload["event"] = event_id
        return payload


@lru_cache(maxsize=1)
def get_registry_sync_service() -> RegistrySyncService:
    """
    Build and cache the registry sync service from environment settings.
    """

    client = RegistryClient(
        settings=get_registry_settings(),
        http_settings=get_registry_http_settings(),
        cache=SQLAlchemyLookupCache(session_factory=get_session_factory()),
    )
    return RegistrySyncService(client=client, sync_settings=get_sync_settings())
