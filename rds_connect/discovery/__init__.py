"""Database discovery package: the Protocol the discovery pipeline depends on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import ListingResult, ResourceRecord, TargetDetail


@runtime_checkable
class DatabaseAPI(Protocol):
    """Read-only calls against the cloud database API."""

    def list_instances(self) -> ListingResult:
        """Return every database instance, unfiltered."""
        ...

    def list_clusters(self) -> ListingResult:
        """Return every replicated cluster, unfiltered."""
        ...

    def describe_target(self, record: ResourceRecord) -> TargetDetail:
        """Fetch port, database name and authentication metadata for one record."""
        ...

    def generate_auth_token(self, host: str, port: int, username: str) -> str:
        ...

    def get_secret_string(self, secret_arn: str) -> str:
        ...
