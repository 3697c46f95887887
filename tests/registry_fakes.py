"""
tests/registry_fakes.py

In-process stand-ins for the registry web API and the lookup cache.

FakeRegistrySession implements the subset of requests.Session used by
RegistryClient and keeps events in memory, so repeated sync runs see the
effects of earlier ones.
"""

from __future__ import annotations

import json
from typing import Any

from app.cache.base import LookupCache
from app.config import RegistryHTTPSettings, RegistrySettings

PROGRAM_ID = "prgMalaria01"
PROGRAM_STAGE_ID = "stgEntomo01"
HOUSE_ATTRIBUTE_ID = "attrHouseNo1"

REGISTRY_SETTINGS = RegistrySettings(
    base_url="https://registry.example.org/",
    username="sync-bot",
    password="secret",
    program_id=PROGRAM_ID,
    program_stage_id=PROGRAM_STAGE_ID,
)

HTTP_SETTINGS = RegistryHTTPSettings(
    timeout_seconds=5.0,
    max_retries=2,
    backoff_initial_seconds=0.5,
    backoff_multiplier=2.0,
    rate_limit_per_second=5.0,
)


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, *, raw: bytes | None = None) -> None:
        self.status_code = status_code
        if raw is not None:
            self.content = raw
        elif payload is None:
            self.content = b""
        else:
            self.content = json.dumps(payload).encode("utf-8")
        self.text = self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.content)


class FakeRegistrySession:
    """
    Minimal registry: org units, one house-number attribute, tracked
    entities keyed by (org unit id, house number), program stage data
    elements and events.
    """

    def __init__(
        self,
        *,
        org_units: dict[str, str] | None = None,
        entities: dict[tuple[str, str], str] | None = None,
        data_elements: dict[str, str] | None = None,
    ) -> None:
        self.auth: Any = None
        self.headers: dict[str, str] = {}
        self.calls: list[dict[str, Any]] = []
        self.org_units = dict(org_units or {})
        self.entities = dict(entities or {})
        self.data_elements = dict(data_elements or {})
        self.events: dict[str, dict[str, Any]] = {}
        self.has_house_attribute = True
        self.failing_houses: set[str] = set()
        self.failing_paths: dict[str, int] = {}
        self.queued: dict[str, list[Any]] = {}
        self._event_counter = 0

    # -- helpers for assertions ------------------------------------------

    def calls_to(self, method: str, path: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["method"] == method and call["path"] == path]

    def write_calls(self) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["method"] in {"POST", "PUT"}]

    def next_event_id(self) -> str:
        return f"evt{self._event_counter + 1:04d}"

    # -- requests.Session surface ----------------------------------------

    def request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        timeout: float | None = None,
    ) -> FakeResponse:
        path = url.split("/api/", 1)[1]
        self.calls.append({"method": method, "path": path, "params": params, "json": json, "timeout": timeout})

        queued = self.queued.get(path)
        if queued:
            item = queued.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        if path in self.failing_paths:
            return FakeResponse(self.failing_paths[path], {"message": "boom"})

        if method == "GET" and path == "organisationUnits.json":
            name = params["filter"].split("name:eq:", 1)[1]
            units = [{"id": self.org_units[name], "name": name}] if name in self.org_units else []
            return FakeResponse(200, {"organisationUnits": units})

        if method == "GET" and path == "trackedEntityAttributes.json":
            attributes = (
                [{"id": HOUSE_ATTRIBUTE_ID, "displayName": "MAL 001-ER05. House Number"}]
                if self.has_house_attribute
                else []
            )
            return FakeResponse(200, {"trackedEntityAttributes": attributes})

        if method == "GET" and path == "trackedEntityInstances.json":
            house_number = params["filter"].split(":eq:", 1)[1]
            if house_number in self.failing_houses:
                return FakeResponse(500, {"message": "internal error"})
            entity_id = self.entities.get((params["ou"], house_number))
            instances = (
                [
                    {
                        "trackedEntityInstance": entity_id,
                        "orgUnit": params["ou"],
                        "attributes": [{"attribute": HOUSE_ATTRIBUTE_ID, "value": house_number}],
                    }
                ]
                if entity_id
                else []
            )
            return FakeResponse(200, {"trackedEntityInstances": instances})

        if method == "GET" and path == f"programStages/{PROGRAM_STAGE_ID}.json":
            return FakeResponse(
                200,
                {
                    "programStageDataElements": [
                        {"dataElement": {"id": element_id, "displayName": name, "valueType": "TEXT"}}
                        for name, element_id in self.data_elements.items()
                    ]
                },
            )

        if method == "GET" and path == "events.json":
            matches = [
                {"event": event_id, "eventDate": event["eventDate"], "dataValues": event["dataValues"]}
                for event_id, event in self.events.items()
                if event["trackedEntityInstance"] == params["trackedEntityInstance"]
                and event["programStage"] == params["programStage"]
                and params["startDate"] <= event["eventDate"] <= params["endDate"]
            ]
            return FakeResponse(200, {"events": matches})

        if method == "POST" and path == "events":
            event_id = self.next_event_id()
            self._event_counter += 1
            self.events[event_id] = dict(json)
            return FakeResponse(
                200,
                {"httpStatus": "OK", "response": {"importSummaries": [{"status": "SUCCESS", "reference": event_id}]}},
            )

        if method == "PUT" and path.startswith("events/"):
            event_id = path.split("/", 1)[1]
            if event_id not in self.events:
                return FakeResponse(404, {"message": f"Event {event_id} not found"})
            self.events[event_id] = dict(json)
            return FakeResponse(200, {"httpStatus": "OK", "response": {"status": "SUCCESS"}})

        return FakeResponse(404, {"message": f"No route for {method} {path}"})


class DictLookupCache(LookupCache):
    def __init__(self) -> None:
        self.entries: dict[tuple[str, str, str], Any] = {}

    def get(self, scope: str, kind: str, key: str) -> Any | None:
        return self.entries.get((scope, kind, key))

    def set(self, scope: str, kind: str, key: str, value: Any) -> None:
        self.entries[(scope, kind, key)] = value
