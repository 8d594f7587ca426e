from __future__ import annotations

import logging
from functools import partial
from typing import Callable

from libscan_platform.scanner.account_enricher import enrich_by_account
from libscan_platform.scanner.directory import build_directory
from libscan_platform.scanner.entity_enricher import enrich_by_entity
from libscan_platform.scanner.session import ScanSession
from shared.models.scan import ScanState, ScanStrategy

logger = logging.getLogger(__name__)

PhaseProgress = Callable[[str, int, int], None]


def run_scan(
    session: ScanSession,
    strategy: ScanStrategy = ScanStrategy.ENTITY,
    *,
    on_progress: PhaseProgress | None = None,
    started_at_ms: int | None = None,
) -> ScanState:
    """Build the directory, enrich it with the chosen strategy, and return the final state."""
    state = ScanState(
        config=session.config,
        account_ids=list(session.account_ids),
        strategy=strategy,
    )
    if started_at_ms is not None:
        state.started_at_ms = started_at_ms

    logger.info(
        "scan_step step=scan_start library=%s region=%s accounts=%s strategy=%s",
        session.config.library_name,
        session.config.region,
        len(state.account_ids),
        strategy.value,
    )

    directory_progress = partial(on_progress, "services") if on_progress else None
    state.entities = build_directory(session, progress=directory_progress)

    if strategy is ScanStrategy.ACCOUNT:
        enrich_progress = partial(on_progress, "accounts") if on_progress else None
        enrich_by_account(session, state.entities, progress=enrich_progress)
    else:
        enrich_progress = partial(on_progress, "modules") if on_progress else None
        enrich_by_entity(session, state.entities, progress=enrich_progress)

    state.mark_completed()
    logger.info(
        "scan_step step=scan_complete entities=%s matched=%s duration_seconds=%s",
        len(state.entities),
        sum(1 for record in state.entities.values() if record.found_library),
        state.duration_seconds,
    )
    return state
