"""
Pydantic models for the GraphQL response bodies the scanner consumes.

Only fields that are actually read are modelled, and every one of them is
optional: a missing branch in a response is a ``None`` here, never a
``KeyError`` at the call site. Lists the API may return as ``null`` are
typed ``list[...] | None``.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Response(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ── Shared ───────────────────────────────────────────────────────────

class ModuleAttribute(_Response):
    name: Optional[str] = None
    value: Optional[str] = None


class LoadedModule(_Response):
    name: Optional[str] = None
    version: Optional[str] = None
    attributes: Optional[List[ModuleAttribute]] = None

    def attribute(self, name: str) -> str | None:
        """Return the last non-empty value reported for attribute *name*."""
        found = None
        for attribute in self.attributes or []:
            if attribute.name == name and attribute.value:
                found = attribute.value
        return found


# ── AccessibleAccounts ──────────────────────────────────────────────

class Account(_Response):
    id: Optional[int] = None
    name: Optional[str] = None


class AccountsActor(_Response):
    accounts: Optional[List[Account]] = None


class AccessibleAccountsData(_Response):
    actor: Optional[AccountsActor] = None

    @property
    def account_ids(self) -> list[int]:
        if self.actor is None:
            return []
        return [account.id for account in self.actor.accounts or [] if account.id is not None]


# ── ListEntities ────────────────────────────────────────────────────

class EntityOutline(_Response):
    guid: Optional[str] = None
    name: Optional[str] = None
    account_id: Optional[int] = Field(default=None, alias="accountId")
    application_id: Optional[int] = Field(default=None, alias="applicationId")
    language: Optional[str] = None
    reporting: Optional[bool] = None


class EntitySearchResults(_Response):
    next_cursor: Optional[str] = Field(default=None, alias="nextCursor")
    entities: Optional[List[EntityOutline]] = None


class EntitySearch(_Response):
    count: Optional[int] = None
    results: Optional[EntitySearchResults] = None


class EntitySearchActor(_Response):
    entity_search: Optional[EntitySearch] = Field(default=None, alias="entitySearch")


class ListEntitiesData(_Response):
    actor: Optional[EntitySearchActor] = None

    @property
    def search(self) -> EntitySearch | None:
        return self.actor.entity_search if self.actor else None

    @property
    def results(self) -> EntitySearchResults | None:
        search = self.search
        return search.results if search else None


# ── LookupLibraryInEntity ───────────────────────────────────────────

class ApplicationInstance(_Response):
    modules: Optional[List[LoadedModule]] = None


class AgentVersions(_Response):
    min_version: Optional[str] = Field(default=None, alias="minVersion")
    max_version: Optional[str] = Field(default=None, alias="maxVersion")


class ApmEntity(_Response):
    guid: Optional[str] = None
    name: Optional[str] = None
    account_id: Optional[int] = Field(default=None, alias="accountId")
    application_id: Optional[int] = Field(default=None, alias="applicationId")
    language: Optional[str] = None
    application_instances: Optional[List[ApplicationInstance]] = Field(
        default=None, alias="applicationInstances"
    )
    running_agent_versions: Optional[AgentVersions] = Field(
        default=None, alias="runningAgentVersions"
    )


class EntityActor(_Response):
    entity: Optional[ApmEntity] = None


class EntityLookupData(_Response):
    actor: Optional[EntityActor] = None

    @property
    def entity(self) -> ApmEntity | None:
        return self.actor.entity if self.actor else None


# ── LookupLibraryInAccount ──────────────────────────────────────────

class HostDetails(_Response):
    name: Optional[str] = None
    host: Optional[str] = None


class ModuleResult(_Response):
    details: Optional[HostDetails] = None
    loaded_modules: Optional[List[LoadedModule]] = Field(default=None, alias="loadedModules")
    application_guids: Optional[List[str]] = Field(default=None, alias="applicationGuids")


class ModuleResultPage(_Response):
    next_cursor: Optional[str] = Field(default=None, alias="nextCursor")
    results: Optional[List[ModuleResult]] = None


class AgentEnvironment(_Response):
    modules: Optional[ModuleResultPage] = None


class AccountNode(_Response):
    agent_environment: Optional[AgentEnvironment] = Field(default=None, alias="agentEnvironment")


class AccountActor(_Response):
    account: Optional[AccountNode] = None


class AccountModulesData(_Response):
    actor: Optional[AccountActor] = None

    @property
    def page(self) -> ModuleResultPage | None:
        if self.actor is None or self.actor.account is None:
            return None
        environment = self.actor.account.agent_environment
        return environment.modules if environment else None
