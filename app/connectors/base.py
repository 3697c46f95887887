"""
app/connectors/base.py

Shared HTTP mechanics for outbound registry calls.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from app.config import RegistryHTTPSettings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD"})


class RegistryRequestError(RuntimeError):
    """
    Raised when a registry call fails. Carries the response body when there was one.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.url = url


class BaseConnector:
    """
    requests-based connector with timeouts, rate limiting and GET retries.

    Only idempotent methods are retried. POST/PUT go out exactly once
    because the registry has no idempotency key for event writes.
    """

    def __init__(
        self,
        *,
        source: str,
        http_settings: RegistryHTTPSettings,
        session: requests.Session | None = None,
        sleep: Any = time.sleep,
    ) -> None:
        self.source = source
        self._session = session or requests.Session()
        self._timeout_seconds = http_settings.timeout_seconds
        self._max_retries = http_settings.max_retries
        self._backoff_initial_seconds = http_settings.backoff_initial_seconds
        self._backoff_multiplier = http_settings.backoff_multiplier
        self._min_request_interval_seconds = (
            1.0 / http_settings.rate_limit_per_second if http_settings.rate_limit_per_second > 0 else 0.0
        )
        self._last_request_monotonic: float = 0.0
        self._sleep = sleep

    def _request_json(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        """
        Execute an HTTP request and return parsed JSON.
        """

        response = self._request(method=method, url=url, params=params, json_body=json_body)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise RegistryRequestError(
                f"{self.source}: response was not valid JSON.",
                status_code=response.status_code,
                body=response.text,
                url=url,
            ) from exc

    def _request_json_object(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> dict[str, Any]:
        """
        Like _request_json, but the body must be a JSON object.
        """

        payload = self._request_json(method=method, url=url, params=params, json_body=json_body)
        if not isinstance(payload, dict):
            raise RegistryRequestError(
                f"{self.source}: expected a JSON object from {method} {url}, got {type(payload).__name__}.",
                url=url,
            )
        return payload

    def _request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> requests.Response:
        """
        Execute an HTTP request with rate limiting, and exponential backoff for idempotent methods.
        """

        method = method.upper()
        max_attempts = self._max_retries + 1 if method in IDEMPOTENT_METHODS else 1

        for attempt in range(max_attempts):
            self._apply_rate_limit()
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json_body,
                    timeout=self._timeout_seconds,
                )
            except requests.RequestException as exc:
                error = RegistryRequestError(
                    f"{self.source}: {method} {url} transport failure: {exc.__class__.__name__}: {exc}",
                    url=url,
                )
            else:
                if 200 <= response.status_code < 300:
                    return response

                error = RegistryRequestError(
                    f"{self.source}: {method} {url} failed with HTTP {response.status_code}: {response.text}",
                    status_code=response.status_code,
                    body=response.text,
                    url=url,
                )
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    logger.error(
                        "Registry request failed source=%s method=%s status=%s url=%s",
                        self.source,
                        method,
                        response.status_code,
                        url,
                    )
                    raise error

            if attempt + 1 >= max_attempts:
                logger.error(
                    "Registry request gave up source=%s method=%s url=%s error=%s",
                    self.source,
                    method,
                    url,
                    error,
                )
                raise error

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Registry request retry source=%s attempt=%s/%s wait_seconds=%.2f url=%s",
                self.source,
                attempt + 1,
                self._max_retries,
                backoff_seconds,
                url,
            )
            self._sleep(backoff_seconds)

        raise RegistryRequestError(f"{self.source}: {method} {url} was never attempted.", url=url)

    def _apply_rate_limit(self) -> None:
        """
        Enforce minimum interval between outbound requests.
        """

        if self._min_request_interval_seconds <= 0:
            return

        now = time.monotonic()
        elapsed = now - self._last_request_monotonic
        remaining = self._min_request_interval_seconds - elapsed
        if remaining > 0:
            self._sleep(remaining)
        self._last_request_monotonic = time.monotonic()
