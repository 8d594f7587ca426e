from __future__ import annotations

from dataclasses import dataclass, field

from shared.models.entity import EntityRecord
from shared.models.scan import ScanState


@dataclass(frozen=True)
class ScanReport:
    all_entities: list[EntityRecord] = field(default_factory=list)
    matched: list[EntityRecord] = field(default_factory=list)
    include_all: bool = False
    duration_seconds: int | None = None

    @property
    def selected(self) -> list[EntityRecord]:
        """The list handed to the report writer."""
        return self.all_entities if self.include_all else self.matched


def report(state: ScanState, include_all: bool = False) -> ScanReport:
    """Split the entity map into all and matched records, in map order. No I/O."""
    all_entities = list(state.entities.values())
    return ScanReport(
        all_entities=all_entities,
        matched=[record for record in all_entities if record.found_library],
        include_all=include_all,
        duration_seconds=state.duration_seconds,
    )
