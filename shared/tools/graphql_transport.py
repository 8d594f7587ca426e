from __future__ import annotations

import json
import logging
from typing import Any, Dict

import requests

from config.settings import REQUEST_TIMEOUT, REQUESTING_SERVICE
from shared.models.scan import ScanConfig
from shared.tools.queries import Query

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

TRUST_FAILURE_MARKERS = (
    "certificate verify failed",
    "certificate_verify_failed",
    "self signed certificate",
    "self-signed certificate",
    "unable to get local issuer certificate",
)


class TransportError(RuntimeError):
    """A request failed in a way that is worth one more attempt."""


class CertificateTrustError(TransportError):
    """The API's TLS certificate could not be verified.

    Never retried and never skipped: the caller must stop the scan.
    """


def _is_trust_failure(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in TRUST_FAILURE_MARKERS)


class GraphQLTransport:
    """Sends one GraphQL query at a time to a NerdGraph endpoint."""

    def __init__(
        self,
        endpoint_url: str,
        api_key: str,
        *,
        timeout: float = REQUEST_TIMEOUT,
        requesting_service: str = REQUESTING_SERVICE,
        session: requests.Session | None = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "API-Key": api_key,
                "NewRelic-Requesting-Services": requesting_service,
            }
        )

    @classmethod
    def from_config(cls, config: ScanConfig, session: requests.Session | None = None) -> "GraphQLTransport":
        return cls(
            config.endpoint_url,
            config.api_key.get_secret_value(),
            timeout=config.request_timeout,
            session=session,
        )

    def execute(self, query: Query, variables: Dict[str, Any] | None = None) -> Dict[str, Any] | None:
        """Run *query* and return its ``data`` object, or None.

        The whole request is sent a second time when the first attempt
        raises a transient error or returns no ``data``. None after the
        second attempt means "skip this item". CertificateTrustError is
        raised immediately.
        """
        payload = {"query": query.text, "variables": variables or {}}
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                data = self._send(query, payload)
            except CertificateTrustError:
                logger.error("transport_trust_failure query=%s endpoint=%s", query.name, self.endpoint_url)
                raise
            except TransportError as exc:
                logger.warning(
                    "transport_error query=%s attempt=%s/%s error=%s",
                    query.name,
                    attempt,
                    MAX_ATTEMPTS,
                    exc,
                )
                continue
            if data is not None:
                return data
            logger.debug("transport_no_data query=%s attempt=%s/%s", query.name, attempt, MAX_ATTEMPTS)

        logger.warning("transport_gave_up query=%s variables=%s", query.name, _loggable(variables))
        return None

    def _send(self, query: Query, payload: Dict[str, Any]) -> Dict[str, Any] | None:
        try:
            response = self.session.post(self.endpoint_url, json=payload, timeout=self.timeout)
        except requests.exceptions.SSLError as exc:
            if _is_trust_failure(exc):
                raise CertificateTrustError(str(exc)) from exc
            raise TransportError(f"TLS error: {exc}") from exc
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc

        if response.status_code >= 500:
            raise TransportError(f"HTTP {response.status_code} from {self.endpoint_url}")

        try:
            body = response.json()
        except ValueError as exc:
            raise TransportError(f"malformed response body (HTTP {response.status_code})") from exc
        if not isinstance(body, dict):
            raise TransportError(f"unexpected response body type {type(body).__name__}")

        errors = body.get("errors")
        if errors:
            logger.warning("graphql_errors query=%s errors=%s", query.name, json.dumps(errors, default=str))

        data = body.get("data")
        return data if isinstance(data, dict) else None


def _loggable(variables: Dict[str, Any] | None) -> str:
    return json.dumps(variables or {}, default=str, sort_keys=True)
