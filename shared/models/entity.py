from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from config.constants import SHA1_ATTRIBUTE, SHA512_ATTRIBUTE
from shared.models.responses import LoadedModule


class EntityRecord(BaseModel):
    """One monitored service instance, keyed by ``guid`` in the entity map.

    Evidence fields stay ``None`` until a lookup reports them; the record
    counts as a match once ``library_name`` is present. Aliases are the
    report column names.
    """

    model_config = ConfigDict(populate_by_name=True)

    guid: str
    account_id: int | None = Field(default=None, alias="accountId")
    application_id: int | None = Field(default=None, alias="applicationId")
    name: str | None = None
    language: str | None = None
    reporting_url: str = Field(default="", alias="nrUrl")

    agent_version_range: str | None = Field(default=None, alias="agentVersion")
    examined_instance_count: int | None = Field(default=None, alias="examinedInstances")
    library_name: str | None = Field(default=None, alias="library")
    library_version: str | None = Field(default=None, alias="libraryVersion")
    library_sha1: str | None = Field(default=None, alias="librarySha1")
    library_sha512: str | None = Field(default=None, alias="librarySha512")

    @property
    def found_library(self) -> bool:
        return bool(self.library_name)

    def to_report_row(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ModuleEvidence(BaseModel):
    """Library metadata reported for one loaded module."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    version: str | None = None
    sha1: str | None = None
    sha512: str | None = None

    @classmethod
    def from_module(cls, module: LoadedModule) -> "ModuleEvidence":
        return cls(
            name=module.name,
            version=module.version,
            sha1=module.attribute(SHA1_ATTRIBUTE),
            sha512=module.attribute(SHA512_ATTRIBUTE),
        )


_EVIDENCE_FIELDS = {
    "name": "library_name",
    "version": "library_version",
    "sha1": "library_sha1",
    "sha512": "library_sha512",
}


def merge_evidence(existing: EntityRecord, incoming: ModuleEvidence) -> EntityRecord:
    """Return *existing* with every field *incoming* carries overwritten.

    This is the only tie-break between modules reporting the same library:
    the last evidence applied wins, field by field. Fields *incoming* does
    not carry keep their current value, so applying the same evidence twice
    is the same as applying it once.
    """
    update: Dict[str, Any] = {}
    for evidence_field, record_field in _EVIDENCE_FIELDS.items():
        value = getattr(incoming, evidence_field)
        if value is not None:
            update[record_field] = value
    if not update:
        return existing
    return existing.model_copy(update=update)


def join_distinct(*values: str | None) -> str:
    """Comma-join the unique, non-blank values in order of first appearance."""
    seen: list[str] = []
    for value in values:
        if value is None or value == "" or value in seen:
            continue
        seen.append(value)
    return ",".join(seen)
