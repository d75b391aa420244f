"""Tests for discovery models."""

import pytest

from rds_connect.discovery.models import (
    EndpointRole,
    ListingResult,
    ResourceKind,
    ResourceRecord,
    TargetDetail,
)


def _record(identifier="db1", kind=ResourceKind.STANDALONE, role=EndpointRole.NONE, **kwargs):
    return ResourceRecord(
        identifier=identifier,
        engine=kwargs.pop("engine", "postgres"),
        endpoint=kwargs.pop("endpoint", "db1.abc.us-east-2.rds.amazonaws.com"),
        kind=kind,
        role=role,
        **kwargs,
    )


class TestResourceRecord:
    def test_menu_line_standalone(self):
        rec = _record("reports-db", engine="mysql", endpoint="reports.example.com")
        assert rec.menu_line(2) == "2. [RDS] reports-db (mysql): reports.example.com"

    def test_menu_line_cluster(self):
        rec = _record(
            "analytics-cluster", kind=ResourceKind.CLUSTER, role=EndpointRole.WRITER,
            engine="aurora-postgresql", endpoint="analytics.cluster-x.example.com",
        )
        assert rec.menu_line(1) == (
            "1. [Aurora] analytics-cluster (aurora-postgresql): analytics.cluster-x.example.com"
        )

    def test_key_distinguishes_roles(self):
        writer = _record("c", kind=ResourceKind.CLUSTER, role=EndpointRole.WRITER)
        reader = _record("c", kind=ResourceKind.CLUSTER, role=EndpointRole.READER)
        assert writer.key != reader.key

    def test_frozen(self):
        rec = _record()
        with pytest.raises(AttributeError):
            rec.identifier = "other"  # type: ignore


class TestTargetDetail:
    def test_defaults(self):
        detail = TargetDetail(port=5432, database_name="app")
        assert detail.iam_auth_enabled is False
        assert detail.secret_arn is None
        assert detail.master_username == ""


class TestListingResult:
    def test_success(self):
        result = ListingResult(items=[{"a": 1}])
        assert result.ok
        assert result.items == [{"a": 1}]

    def test_empty_success_is_not_failure(self):
        assert ListingResult().ok

    def test_failed(self):
        result = ListingResult.failed("AccessDenied")
        assert not result.ok
        assert result.items == []
        assert result.error == "AccessDenied"
