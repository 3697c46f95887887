"""
app/connectors/registry_client.py

Client for the external tracker registry (organisation units, tracked
entities, program stage data elements, events).

Identity lookups are read through the lookup cache; event reads and
writes always go to the registry.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from app.cache.base import CacheKind, LookupCache, NullLookupCache
from app.config import RegistryHTTPSettings, RegistrySettings
from app.connectors.base import BaseConnector, RegistryRequestError
from app.domain.registry_sync import RemoteEvent, TrackedEntity

logger = logging.getLogger(__name__)


class RegistryConfigurationError(RegistryRequestError):
    """
    Raised when the registry lacks metadata the sync depends on.
    """


def tracked_entity_cache_key(org_unit_name: str, house_number: str) -> str:
    """
    Cache key for a tracked-entity lookup. House numbers repeat across
    organisation units, so the org unit is part of the key.
    """

    return f"{org_unit_name.strip()}::{house_number.strip()}"


class RegistryClient(BaseConnector):
    """
    Thin wrapper over the registry's web API.
    """

    def __init__(
        self,
        *,
        settings: RegistrySettings,
        http_settings: RegistryHTTPSettings,
        cache: LookupCache | None = None,
        session: requests.Session | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(source="registry", http_settings=http_settings, session=session, **kwargs)
        self._settings = settings
        self._cache = cache or NullLookupCache()
        self._session.auth = (settings.username, settings.password)
        self._session.headers.update({"Accept": "application/json"})

    @property
    def program_id(self) -> str:
        return self._settings.program_id

    @property
    def program_stage_id(self) -> str:
        return self._settings.program_stage_id

    @property
    def event_status(self) -> str:
        return self._settings.event_status

    def _url(self, path: str) -> str:
        return f"{self._settings.api_url}/{path.lstrip('/')}"

    # ------------------------------------------------------------------
    # Identity resolution
    # ------------------------------------------------------------------

    def resolve_org_unit(self, display_name: str) -> str | None:
        """
        Return the organisation unit id whose name equals display_name, or None.
        """

        scope = self.program_stage_id
        cached = self._cache.get(scope, CacheKind.ORG_UNIT, display_name)
        if isinstance(cached, str) and cached:
            return cached

        payload = self._request_json_object(
            method="GET",
            url=self._url("organisationUnits.json"),
            params={
                "filter": f"name:eq:{display_name}",
                "fields": "id,name",
                "paging": "false",
            },
        )
        units = payload.get("organisationUnits") or []
        if not units:
            logger.info("Organisation unit not found name=%s", display_name)
            return None

        org_unit_id = str(units[0]["id"])
        self._cache.set(scope, CacheKind.ORG_UNIT, display_name, org_unit_id)
        return org_unit_id

    def resolve_house_number_attribute(self) -> str:
        """
        Return the id of the tracked entity attribute holding house numbers.
        """

        attribute_name = self._settings.house_number_attribute
        payload = self._request_json_object(
            method="GET",
            url=self._url("trackedEntityAttributes.json"),
            params={
                "filter": f"displayName:like:{attribute_name}",
                "fields": "id,displayName",
                "paging": "false",
            },
        )
        attributes = payload.get("trackedEntityAttributes") or []
        if not attributes:
            raise RegistryConfigurationError(
                f"{self.source}: tracked entity attribute matching '{attribute_name}' not found."
            )
        return str(attributes[0]["id"])

    def search_tracked_entity(self, org_unit_name: str, house_number: str) -> TrackedEntity | None:
        """
        Find the household's tracked entity in the configured program.

        Returns None when the org unit or the house number has no match.
        Multiple matches are not disambiguated; the first one wins.
        """

        scope = self.program_stage_id
        cache_key = tracked_entity_cache_key(org_unit_name, house_number)
        cached = self._cache.get(scope, CacheKind.TRACKED_ENTITY, cache_key)
        if isinstance(cached, dict):
            try:
                return TrackedEntity.from_payload(cached)
            except (KeyError, TypeError):
                logger.warning("Discarding malformed tracked entity cache entry key=%s", cache_key)

        org_unit_id = self.resolve_org_unit(org_unit_name)
        if org_unit_id is None:
            return None

        attribute_id = self.resolve_house_number_attribute()
        payload = self._request_json_object(
            method="GET",
            url=self._url("trackedEntityInstances.json"),
            params={
                "ou": org_unit_id,
                "program": self.program_id,
                "filter": f"{attribute_id}:eq:{house_number}",
                "fields": "trackedEntityInstance,orgUnit,attributes[attribute,value,displayName]",
                "paging": "false",
            },
        )
        instances = payload.get("trackedEntityInstances") or []
        if not instances:
            return None
        if len(instances) > 1:
            logger.warning(
                "Multiple tracked entities matched org_unit=%s house_number=%s count=%s; using first",
                org_unit_name,
                house_number,
                len(instances),
            )

        entity = TrackedEntity.from_payload(instances[0])
        self._cache.set(scope, CacheKind.TRACKED_ENTITY, cache_key, entity.to_payload())
        return entity

    # ------------------------------------------------------------------
    # Data elements
    # ------------------------------------------------------------------

    def fetch_program_stage_data_elements(self) -> list[dict[str, str]]:
        """
        Return the data elements configured on the program stage.
        """

        payload = self._request_json_object(
            method="GET",
            url=self._url(f"programStages/{self.program_stage_id}.json"),
            params={"fields": "programStageDataElements[dataElement[id,displayName,valueType]]"},
        )
        elements: list[dict[str, str]] = []
        stage_elements = payload.get("programStageDataElements") or []
        if not isinstance(stage_elements, list):
            raise RegistryRequestError(
                f"{self.source}: programStageDataElements of {self.program_stage_id} is not a list.",
            )
        for stage_element in stage_elements:
            data_element = stage_element.get("dataElement") if isinstance(stage_element, dict) else None
            if not isinstance(data_element, dict):
                continue
            if not data_element.get("id") or not data_element.get("displayName"):
                continue
            elements.append(
                {
                    "id": str(data_element["id"]),
                    "displayName": str(data_element["displayName"]),
                    "valueType": str(data_element.get("valueType") or ""),
                }
            )
        return elements

    def fetch_element_map(self, scope_id: str | None = None) -> dict[str, str]:
        """
        Return the display name -> data element id map for a program stage.

        Cached as a list of [name, id] pairs under the stage id.
        """

        scope = scope_id or self.program_stage_id
        cached = self._cache.get(scope, CacheKind.ELEMENT_MAP, scope)
        if isinstance(cached, list) and cached:
            try:
                return {str(name): str(element_id) for name, element_id in cached}
            except (TypeError, ValueError):
                logger.warning("Discarding malformed element map cache entry scope=%s", scope)

        element_map = {
            element["displayName"]: element["id"] for element in self.fetch_program_stage_data_elements()
        }
        if element_map:
            pairs = [[name, element_id] for name, element_id in element_map.items()]
            self._cache.set(scope, CacheKind.ELEMENT_MAP, scope, pairs)
        return element_map

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def get_existing_event(
        self,
        entity_id: str,
        event_date: str,
        *,
        end_date: str | None = None,
    ) -> RemoteEvent | None:
        """
        Return the first program-stage event for the entity between event_date and end_date.
        """

        payload = self._request_json_object(
            method="GET",
            url=self._url("events.json"),
            params={
                "trackedEntityInstance": entity_id,
                "programStage": self.program_stage_id,
                "startDate": event_date,
                "endDate": end_date or event_date,
                "fields": "event,eventDate,dataValues[dataElement,value]",
                "paging": "false",
            },
        )
        events = payload.get("events") or []
        if not events:
            return None

        first = events[0]
        return RemoteEvent(
            event_id=str(first["event"]),
            event_date=(first.get("eventDate") or None),
            data_values=tuple(first.get("dataValues") or ()),
        )

    def create_event(self, event: dict[str, Any]) -> dict[str, Any]:
        return self._request_json(method="POST", url=self._url("events"), json_body=event)

    def update_event(self, event_id: str, event: dict[str, Any]) -> dict[str, Any]:
        return self._request_json(method="PUT", url=self._url(f"events/{event_id}"), json_body=event)


def created_event_id(response: dict[str, Any]) -> str | None:
    """
    Extract the new event id from a create-event response.
    """

    body = response.get("response") if isinstance(response, dict) else None
    if not isinstance(body, dict):
        return None

    summaries = body.get("importSummaries") or []
    if summaries and isinstance(summaries[0], dict) and summaries[0].get("reference"):
        return str(summaries[0]["reference"])
    if body.get("uid"):
        return str(body["uid"])
    return None
