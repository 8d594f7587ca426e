"""
Per-entity strategy: one library lookup per directory record.

This is the default strategy. It costs one round-trip per service but also
reports the running agent versions.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from pydantic import ValidationError

from libscan_platform.scanner.session import ProgressCallback, ScanSession
from shared.models.entity import EntityRecord, ModuleEvidence, join_distinct, merge_evidence
from shared.models.responses import ApmEntity, EntityLookupData
from shared.tools.graphql_transport import CertificateTrustError
from shared.tools.queries import LOOKUP_LIBRARY_IN_ENTITY

logger = logging.getLogger(__name__)


def apply_entity_lookup(record: EntityRecord, entity: ApmEntity) -> EntityRecord:
    """Return *record* updated with one entity lookup result.

    Every instance reporting at least one module counts as examined; each
    module overwrites the library fields in turn, so the last one wins.
    """
    updated = record
    versions = entity.running_agent_versions
    if versions is not None:
        agent_range = join_distinct(versions.min_version, versions.max_version)
        if agent_range:
            updated = updated.model_copy(update={"agent_version_range": agent_range})

    instance_count = 0
    for instance in entity.application_instances or []:
        modules = instance.modules or []
        if not modules:
            continue
        instance_count += 1
        for module in modules:
            updated = merge_evidence(updated, ModuleEvidence.from_module(module))

    return updated.model_copy(update={"examined_instance_count": instance_count})


def _lookup_entity(session: ScanSession, record: EntityRecord) -> ApmEntity | None:
    variables: Dict[str, Any] = {
        "entityGuid": record.guid,
        "libraryName": session.config.library_name,
    }
    data = session.transport.execute(LOOKUP_LIBRARY_IN_ENTITY, variables)
    if data is None:
        return None
    try:
        return EntityLookupData.model_validate(data).entity
    except ValidationError as exc:
        logger.warning("scan_warning step=entity_lookup guid=%s reason=malformed_response error=%s", record.guid, exc)
        return None


def enrich_by_entity(
    session: ScanSession,
    directory: dict[str, EntityRecord],
    progress: ProgressCallback | None = None,
) -> None:
    """Look the library up in every directory record, updating *directory* in place.

    A record is replaced only after its lookup fully succeeded. A failing
    entity is logged and skipped; only CertificateTrustError escapes.
    """
    total = len(directory)
    if progress is not None:
        progress(0, total)

    matched = 0
    for index, guid in enumerate(list(directory), start=1):
        record = directory[guid]
        try:
            entity = _lookup_entity(session, record)
            if entity is None or entity.application_instances is None:
                logger.warning(
                    "scan_warning step=entity_lookup guid=%s reason=missing_instances "
                    "- please check this service manually at %s",
                    guid,
                    record.reporting_url or "(no reporting url)",
                )
            else:
                directory[guid] = apply_entity_lookup(record, entity)
                if directory[guid].found_library:
                    matched += 1
        except CertificateTrustError:
            raise
        except Exception as exc:
            logger.error("scan_error step=entity_lookup guid=%s error=%s", guid, exc)

        if progress is not None:
            progress(index, total)

    logger.info("scan_step step=entity_lookup_complete entities=%s matched=%s", total, matched)
