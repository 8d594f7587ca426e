"""
Scan session: the authenticated hand-off between setup and the scan phases.

A session bundles the frozen configuration, the transport every phase
sends its queries through, and the accounts the API key may query.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Protocol

from pydantic import ValidationError

from shared.models.responses import AccessibleAccountsData
from shared.models.scan import ScanConfig
from shared.tools.graphql_transport import GraphQLTransport
from shared.tools.queries import ACCESSIBLE_ACCOUNTS, Query

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class Transport(Protocol):
    def execute(self, query: Query, variables: Dict[str, Any] | None = None) -> Dict[str, Any] | None:
        ...


class AuthenticationError(RuntimeError):
    """The API key was rejected or grants access to no accounts."""


@dataclass
class ScanSession:
    config: ScanConfig
    transport: Transport
    account_ids: list[int] = field(default_factory=list)


def fetch_account_ids(transport: Transport) -> list[int]:
    """Return the ids of every account the key can query ([] on failure)."""
    data = transport.execute(ACCESSIBLE_ACCOUNTS)
    if data is None:
        return []
    try:
        parsed = AccessibleAccountsData.model_validate(data)
    except ValidationError as exc:
        logger.warning("scan_warning step=accounts reason=malformed_response error=%s", exc)
        return []
    return parsed.account_ids


def open_session(config: ScanConfig, transport: Transport | None = None) -> ScanSession:
    """Check the API key and resolve the accounts to scan.

    Raises AuthenticationError when no account is accessible, or when the
    configured account filter leaves nothing to scan.
    """
    transport = transport or GraphQLTransport.from_config(config)
    account_ids = fetch_account_ids(transport)
    if not account_ids:
        raise AuthenticationError(
            "API key is invalid, grants access to no accounts, "
            f"or the API at {config.endpoint_url} could not be reached."
        )
    logger.info("scan_step step=accounts accessible=%s", len(account_ids))

    if config.account_filter:
        requested = list(dict.fromkeys(config.account_filter))
        inaccessible = [account_id for account_id in requested if account_id not in account_ids]
        for account_id in inaccessible:
            logger.warning("scan_warning step=accounts account=%s reason=not_accessible", account_id)
        account_ids = [account_id for account_id in requested if account_id in account_ids]
        if not account_ids:
            raise AuthenticationError("None of the requested accounts are accessible with this API key.")

    return ScanSession(config=config, transport=transport, account_ids=account_ids)
