"""Discovery pipeline: list, filter by tags, and normalize instances and clusters."""

from __future__ import annotations

import logging
from typing import Any

from ..exceptions import NoResourcesFound
from . import DatabaseAPI
from .models import EndpointRole, ListingResult, ResourceKind, ResourceRecord
from .tag_filter import TagFilterSet

logger = logging.getLogger(__name__)


def tags_of(raw: dict[str, Any]) -> dict[str, str]:
    """Project an RDS ``TagList`` into a key/value mapping."""
    return {t["Key"]: t.get("Value", "") for t in raw.get("TagList") or [] if "Key" in t}


class ResourceDiscoveryService:
    """Turns the two RDS listings into one sorted list of connectable endpoints."""

    def __init__(self, api: DatabaseAPI, tags: TagFilterSet, endpoint_type: str | None = None):
        self._api = api
        self._tags = tags
        self._endpoint_type = endpoint_type

    def discover(self) -> list[ResourceRecord]:
        """Return matching records ordered by identifier.

        Raises NoResourcesFound if nothing matches.
        """
        logger.info("Searching for %s...", self._tags.describe())
        # Results are assembled in memory; no scratch file is written
        instances = self._tags.apply(self._listing(self._api.list_instances(), "instance"), tags_of)
        clusters = self._tags.apply(self._listing(self._api.list_clusters(), "cluster"), tags_of)

        records = self.standalone_records(instances) + self.cluster_records(clusters)
        records.sort(key=lambda r: r.identifier)

        if not records:
            raise NoResourcesFound("No databases found matching filters")

        logger.debug("Discovery complete", extra={"total_resources": len(records)})
        return records

    @staticmethod
    def _listing(result: ListingResult, name: str) -> list[dict[str, Any]]:
        # A failed listing counts as empty so the other listing can still be used
        if not result.ok:
            logger.debug("Treating failed %s listing as empty: %s", name, result.error)
        return result.items

    @staticmethod
    def standalone_records(instances: list[dict[str, Any]]) -> list[ResourceRecord]:
        """Instances that are not members of a cluster."""
        records: list[ResourceRecord] = []
        for raw in instances:
            if raw.get("DBClusterIdentifier"):
                continue
            endpoint = raw.get("Endpoint") or {}
            address = endpoint.get("Address")
            if not address:
                logger.debug("Instance %s has no endpoint yet, skipping", raw.get("DBInstanceIdentifier"))
                continue
            records.append(ResourceRecord(
                identifier=raw["DBInstanceIdentifier"],
                engine=raw.get("Engine", ""),
                endpoint=address,
                kind=ResourceKind.STANDALONE,
                port=endpoint.get("Port"),
            ))
        return records

    def cluster_records(self, clusters: list[dict[str, Any]]) -> list[ResourceRecord]:
        """Writer and/or reader endpoint records per cluster, per the endpoint selector."""
        records: list[ResourceRecord] = []
        for raw in clusters:
            endpoints: list[tuple[EndpointRole, str | None]] = []
            if self._endpoint_type in (None, "writer"):
                endpoints.append((EndpointRole.WRITER, raw.get("Endpoint")))
            if self._endpoint_type in (None, "reader"):
                endpoints.append((EndpointRole.READER, raw.get("ReaderEndpoint")))

            for role, host in endpoints:
                if not host:
                    continue
                records.append(ResourceRecord(
                    identifier=raw["DBClusterIdentifier"],
                    engine=raw.get("Engine", ""),
                    endpoint=host,
                    kind=ResourceKind.CLUSTER,
                    role=role,
                    port=raw.get("Port"),
                ))
        return records
