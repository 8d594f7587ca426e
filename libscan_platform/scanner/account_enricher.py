"""
Per-account strategy: one paginated module search per account.

Far fewer requests than the per-entity strategy, but it does not report
agent versions, and on some accounts it has been seen to return fewer
matches than the per-entity lookups. It stays opt-in (``--quick-scan``).
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict

from pydantic import ValidationError

from config.constants import RUNTIME_PREFIXES
from libscan_platform.scanner.session import ProgressCallback, ScanSession
from shared.models.entity import EntityRecord, ModuleEvidence, merge_evidence
from shared.models.responses import AccountModulesData, ModuleResult, ModuleResultPage
from shared.tools.graphql_transport import CertificateTrustError
from shared.tools.queries import LOOKUP_LIBRARY_IN_ACCOUNT
from shared.utils.guid import build_reporting_url, decode_application_id

logger = logging.getLogger(__name__)

_PORT_SUFFIX = re.compile(r":\d+$")


def display_name_from_host(identifier: str | None) -> str | None:
    """Strip a runtime prefix and a port suffix: ``java:myhost:8080`` -> ``myhost``."""
    if not identifier:
        return identifier
    value = identifier
    prefix, separator, rest = value.partition(":")
    if separator and prefix.lower() in RUNTIME_PREFIXES:
        value = rest
    return _PORT_SUFFIX.sub("", value)


def synthesize_record(
    guid: str,
    account_id: int,
    name: str | None,
    region: str = "us",
) -> EntityRecord:
    """Build a minimal record for a guid the entity search did not return."""
    application_id = decode_application_id(guid)
    return EntityRecord(
        guid=guid,
        account_id=account_id,
        application_id=application_id,
        name=name,
        reporting_url=build_reporting_url(account_id, application_id, region),
    )


def apply_module_result(
    directory: dict[str, EntityRecord],
    account_id: int,
    result: ModuleResult,
    region: str = "us",
) -> int:
    """Merge one module search result into *directory*; return records touched."""
    modules = result.loaded_modules or []
    if not modules:
        return 0

    details = result.details
    display_name = display_name_from_host(details.name if details else None)
    host = details.host if details else None
    guids = [guid for guid in result.application_guids or [] if guid]

    touched = 0
    for module in modules:
        if not guids:
            logger.warning(
                "scan_warning step=account_lookup account=%s reason=unattributed_module "
                "app=%s host=%s module=%s version=%s",
                account_id,
                display_name,
                host,
                module.name,
                module.version,
            )
            continue

        evidence = ModuleEvidence.from_module(module)
        for guid in guids:
            record = directory.get(guid)
            if record is None:
                record = synthesize_record(guid, account_id, display_name, region)
                logger.info(
                    "scan_step step=account_lookup account=%s guid=%s action=synthesized application_id=%s",
                    account_id,
                    guid,
                    record.application_id,
                )
            directory[guid] = merge_evidence(record, evidence)
            touched += 1
    return touched


def _parse_page(data: Dict[str, Any], account_id: int) -> ModuleResultPage | None:
    try:
        return AccountModulesData.model_validate(data).page
    except ValidationError as exc:
        logger.warning(
            "scan_warning step=account_lookup account=%s reason=malformed_response error=%s",
            account_id,
            exc,
        )
        return None


def _scan_account(session: ScanSession, directory: dict[str, EntityRecord], account_id: int) -> None:
    variables: Dict[str, Any] = {
        "accountId": account_id,
        "libraryName": session.config.library_name,
    }
    page_number = 1
    touched = 0

    data = session.transport.execute(LOOKUP_LIBRARY_IN_ACCOUNT, variables)
    while data is not None:
        page = _parse_page(data, account_id)
        if page is None:
            logger.warning(
                "scan_warning step=account_lookup account=%s page=%s reason=missing_modules",
                account_id,
                page_number,
            )
            break

        for result in page.results or []:
            touched += apply_module_result(directory, account_id, result, session.config.region)

        if not page.next_cursor:
            break
        page_number += 1
        data = session.transport.execute(
            LOOKUP_LIBRARY_IN_ACCOUNT,
            {**variables, "cursor": page.next_cursor},
        )
    else:
        logger.warning(
            "scan_warning step=account_lookup account=%s page=%s reason=no_data",
            account_id,
            page_number,
        )

    logger.debug(
        "scan_step step=account_lookup account=%s pages=%s records_touched=%s",
        account_id,
        page_number,
        touched,
    )


def enrich_by_account(
    session: ScanSession,
    directory: dict[str, EntityRecord],
    progress: ProgressCallback | None = None,
) -> None:
    """Search every account for the library, updating *directory* in place.

    A failing account is logged and skipped; only CertificateTrustError
    escapes.
    """
    total = len(session.account_ids)
    if progress is not None:
        progress(0, total)

    for index, account_id in enumerate(session.account_ids, start=1):
        try:
            _scan_account(session, directory, account_id)
        except CertificateTrustError:
            raise
        except Exception as exc:
            logger.error("scan_error step=account_lookup account=%s error=%s", account_id, exc)

        if progress is not None:
            progress(index, total)

    matched = sum(1 for record in directory.values() if record.found_library)
    logger.info("scan_step step=account_lookup_complete accounts=%s matched=%s", total, matched)
