from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from config.constants import REGIONS
from shared.models.entity import EntityRecord


class ScanStrategy(str, Enum):
    """Traversal order used to look for the library."""
    ENTITY = "entity"
    ACCOUNT = "account"


class ScanConfig(BaseModel):
    """Immutable session configuration, fixed before any request is sent."""

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr
    library_name: str
    region: str = "us"
    endpoint_url: str = ""
    entity_language: Optional[str] = None
    request_timeout: float = Field(default=60.0, gt=0)
    account_filter: Optional[List[int]] = None

    @field_validator("library_name")
    @classmethod
    def _library_name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("library_name must not be empty")
        return value

    @field_validator("region")
    @classmethod
    def _known_region(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in REGIONS:
            raise ValueError(f"region must be one of: {' '.join(REGIONS)}")
        return value

    @model_validator(mode="before")
    @classmethod
    def _default_endpoint(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("endpoint_url"):
            region = str(data.get("region") or "us").strip().lower()
            if region in REGIONS:
                data = {**data, "endpoint_url": REGIONS[region]["graphql"]}
        return data


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ScanState:
    """Mutable aggregate threaded through every phase of one scan."""

    config: ScanConfig
    account_ids: list[int]
    strategy: ScanStrategy = ScanStrategy.ENTITY
    entities: dict[str, EntityRecord] = field(default_factory=dict)
    started_at_ms: int = field(default_factory=now_ms)
    completed_at_ms: int | None = None

    def mark_completed(self, at_ms: int | None = None) -> None:
        self.completed_at_ms = at_ms if at_ms is not None else now_ms()

    @property
    def duration_seconds(self) -> int | None:
        if self.completed_at_ms is None:
            return None
        return math.ceil((self.completed_at_ms - self.started_at_ms) / 1000)
