"""
Entity directory: every reporting APM service, keyed by entity guid.

Pages are requested strictly in order; page N+1 needs the cursor from page
N. Paging stops when the server omits ``nextCursor``. There is no page
ceiling of our own, so a server that hands out cursors forever keeps the
scan paging.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from pydantic import ValidationError

from libscan_platform.scanner.session import ProgressCallback, ScanSession
from shared.models.entity import EntityRecord
from shared.models.responses import EntityOutline, ListEntitiesData
from shared.tools.queries import LIST_ENTITIES, entity_search_filter
from shared.utils.guid import build_reporting_url, decode_application_id

logger = logging.getLogger(__name__)


def record_from_outline(outline: EntityOutline, region: str = "us") -> EntityRecord:
    """Build a directory record, decoding the application id from the guid when omitted."""
    application_id = outline.application_id
    if application_id is None:
        application_id = decode_application_id(outline.guid)
    return EntityRecord(
        guid=outline.guid or "",
        account_id=outline.account_id,
        application_id=application_id,
        name=outline.name,
        language=outline.language,
        reporting_url=build_reporting_url(outline.account_id, application_id, region),
    )


def _parse_page(data: Dict[str, Any], page: int) -> ListEntitiesData | None:
    try:
        return ListEntitiesData.model_validate(data)
    except ValidationError as exc:
        logger.warning("scan_warning step=directory page=%s reason=malformed_response error=%s", page, exc)
        return None


def build_directory(
    session: ScanSession,
    progress: ProgressCallback | None = None,
) -> dict[str, EntityRecord]:
    """Page through the entity search and return ``{guid: EntityRecord}``.

    A later page overwrites an earlier record with the same guid. A page
    that cannot be fetched ends paging; the records collected so far are
    kept and the gap is logged.
    """
    config = session.config
    variables: Dict[str, Any] = {"searchQuery": entity_search_filter(config.entity_language)}
    directory: dict[str, EntityRecord] = {}
    total: int | None = None
    page = 1

    data = session.transport.execute(LIST_ENTITIES, variables)
    while True:
        if data is None:
            logger.warning(
                "scan_warning step=directory page=%s reason=no_data collected=%s - directory may be incomplete",
                page,
                len(directory),
            )
            break
        parsed = _parse_page(data, page)
        results = parsed.results if parsed else None
        if results is None:
            logger.warning("scan_warning step=directory page=%s reason=missing_results", page)
            break

        if total is None and parsed.search is not None:
            total = parsed.search.count
            logger.info("scan_step step=directory_start reported_count=%s", total)

        added = 0
        for outline in results.entities or []:
            if not outline.guid:
                continue
            directory[outline.guid] = record_from_outline(outline, config.region)
            added += 1
        logger.debug("scan_step step=directory_page page=%s entities=%s", page, added)
        if progress is not None:
            progress(len(directory), max(total or 0, len(directory)))

        cursor = results.next_cursor
        if not cursor:
            break
        page += 1
        data = session.transport.execute(LIST_ENTITIES, {**variables, "cursor": cursor})

    logger.info(
        "scan_step step=directory_complete pages=%s entities=%s reported_count=%s",
        page,
        len(directory),
        total,
    )
    return directory
