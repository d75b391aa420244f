"""Data models for discovered databases and the resolved connection target."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ResourceKind(str, Enum):
    STANDALONE = "standalone"
    CLUSTER = "cluster"

    @property
    def label(self) -> str:
        """Classification tag shown in the selection menu."""
        return "[Aurora]" if self is ResourceKind.CLUSTER else "[RDS]"


class EndpointRole(str, Enum):
    NONE = "none"
    WRITER = "writer"
    READER = "reader"


@dataclass(frozen=True)
class ResourceRecord:
    """One connectable endpoint. A cluster may contribute a writer and a reader record."""

    identifier: str
    engine: str
    endpoint: str
    kind: ResourceKind
    role: EndpointRole = EndpointRole.NONE
    port: int | None = None

    @property
    def key(self) -> tuple[str, EndpointRole]:
        """Unique within one discovery result."""
        return (self.identifier, self.role)

    def menu_line(self, index: int) -> str:
        return f"{index}. {self.kind.label} {self.identifier} ({self.engine}): {self.endpoint}"


@dataclass(frozen=True)
class TargetDetail:
    """Connection details fetched for the selected record."""

    port: int
    database_name: str
    master_username: str = ""
    iam_auth_enabled: bool = False
    secret_arn: str | None = None


@dataclass(frozen=True)
class ListingResult:
    """Outcome of one listing call, keeping "call failed" apart from "nothing listed"."""

    items: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, error: str) -> ListingResult:
        return cls(items=[], error=error)
