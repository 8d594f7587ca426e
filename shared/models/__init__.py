from shared.models.entity import EntityRecord, ModuleEvidence, join_distinct, merge_evidence
from shared.models.responses import (
    AccessibleAccountsData,
    AccountModulesData,
    EntityLookupData,
    ListEntitiesData,
    LoadedModule,
)
from shared.models.scan import ScanConfig, ScanState, ScanStrategy

__all__ = [
    "AccessibleAccountsData",
    "AccountModulesData",
    "EntityLookupData",
    "EntityRecord",
    "ListEntitiesData",
    "LoadedModule",
    "ModuleEvidence",
    "ScanConfig",
    "ScanState",
    "ScanStrategy",
    "join_distinct",
    "merge_evidence",
]
