from __future__ import annotations

from datetime import datetime
from typing import Any, Final

from mini_warehouse.common.utils import _curr_date
from pydantic import ConfigDict, Field, field_validator
from pydantic.dataclasses import dataclass

DEFAULT_WAREHOUSE_ID: Final = 0
DEFAULT_WAREHOUSE_NAME: Final = "default_warehouse"
DEFAULT_WORKER_GROUP_ID: Final = 0


@dataclass(frozen=True, config=ConfigDict(extra="forbid"))
class Warehouse:
    id: int
    name: str
    worker_group_id: int
    created_at: str = Field(default_factory=_curr_date)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Warehouse name must not be empty")
        return v

    @property
    def is_default(self) -> bool:
        return self.id == DEFAULT_WAREHOUSE_ID

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "worker_group_id": self.worker_group_id,
            "created_at": self.created_at,
        }


@dataclass(frozen=True, config=ConfigDict(extra="ignore"))
class ComputeNode:
    id: int
    alive: bool
    host: str | None = None
    last_heartbeat: datetime | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ComputeNode:
        return cls(**d)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "alive": self.alive,
            "host": self.host,
            "last_heartbeat": (
                self.last_heartbeat.isoformat() if self.last_heartbeat else None
            ),
        }
