"""AWS boto3 client for listing RDS instances and Aurora clusters and fetching credentials."""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import AWSConfig
from ..exceptions import (
    ConfigError,
    SecretRetrievalFailed,
    TargetResolutionError,
    TokenGenerationFailed,
)
from .models import ListingResult, ResourceKind, ResourceRecord, TargetDetail

logger = logging.getLogger(__name__)


class RDSClient:
    """Thin wrapper over the ``rds`` and ``secretsmanager`` boto3 clients."""

    def __init__(self, aws_config: AWSConfig):
        self._config = aws_config

        session_kwargs: dict[str, Any] = {"region_name": aws_config.region}
        if aws_config.profile:
            session_kwargs["profile_name"] = aws_config.profile

        try:
            session = boto3.Session(**session_kwargs)
            self._rds = session.client("rds")
            self._secrets = session.client("secretsmanager")
        except BotoCoreError as exc:
            raise ConfigError(f"Cannot create AWS session: {exc}") from exc

    # ── Listings ─────────────────────────────────────────────────────

    def list_instances(self) -> ListingResult:
        return self._paginate("describe_db_instances", "DBInstances")

    def list_clusters(self) -> ListingResult:
        return self._paginate("describe_db_clusters", "DBClusters")

    def _paginate(self, operation: str, result_key: str) -> ListingResult:
        items: list[dict[str, Any]] = []
        try:
            for page in self._rds.get_paginator(operation).paginate():
                items.extend(page.get(result_key, []))
        except (BotoCoreError, ClientError) as exc:
            logger.debug("%s failed: %s", operation, exc)
            return ListingResult.failed(str(exc))
        logger.debug("%s returned %d items", operation, len(items))
        return ListingResult(items=items)

    # ── Target detail ────────────────────────────────────────────────

    def describe_target(self, record: ResourceRecord) -> TargetDetail:
        """Fetch connection details for the selected record.

        Raises TargetResolutionError if the lookup fails or port/database name are missing.
        """
        try:
            if record.kind is ResourceKind.CLUSTER:
                response = self._rds.describe_db_clusters(DBClusterIdentifier=record.identifier)
                raw = _first(response.get("DBClusters"))
                port = raw.get("Port")
            else:
                response = self._rds.describe_db_instances(DBInstanceIdentifier=record.identifier)
                raw = _first(response.get("DBInstances"))
                port = (raw.get("Endpoint") or {}).get("Port")
        except (BotoCoreError, ClientError) as exc:
            raise TargetResolutionError(
                f"Failed to retrieve details for database {record.identifier}: {exc}"
            ) from exc

        return parse_target_detail(raw, port)

    # ── Credentials ──────────────────────────────────────────────────

    def generate_auth_token(self, host: str, port: int, username: str) -> str:
        """Presign a short-lived (15 minute) IAM database authentication token."""
        try:
            return self._rds.generate_db_auth_token(
                DBHostname=host,
                Port=port,
                DBUsername=username,
                Region=self._config.region,
            )
        except (BotoCoreError, ClientError) as exc:
            raise TokenGenerationFailed(
                f"Failed to generate IAM authentication token: {exc}"
            ) from exc

    def get_secret_string(self, secret_arn: str) -> str:
        try:
            response = self._secrets.get_secret_value(SecretId=secret_arn)
        except (BotoCoreError, ClientError) as exc:
            raise SecretRetrievalFailed(
                f"Failed to retrieve secret from Secrets Manager: {exc}"
            ) from exc
        return response.get("SecretString") or ""


def _first(items: list[dict[str, Any]] | None) -> dict[str, Any]:
    return items[0] if items else {}


def parse_target_detail(raw: dict[str, Any], port: Any) -> TargetDetail:
    """Build a TargetDetail from a raw describe response entry."""
    if port in (None, ""):
        raise TargetResolutionError("Failed to retrieve database port")
    try:
        port = int(port)
    except (TypeError, ValueError) as exc:
        raise TargetResolutionError(f"Database port is not an integer: {port}") from exc

    database_name = raw.get("DatabaseName") or raw.get("DBName") or ""
    if not database_name:
        raise TargetResolutionError("Failed to retrieve database name")

    secret = raw.get("MasterUserSecret") or {}
    return TargetDetail(
        port=port,
        database_name=database_name,
        master_username=raw.get("MasterUsername") or "",
        iam_auth_enabled=bool(raw.get("IAMDatabaseAuthenticationEnabled")),
        secret_arn=secret.get("SecretArn") or None,
    )
