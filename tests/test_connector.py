"""Tests for the end-to-end connection pipeline."""

from __future__ import annotations

import io
from contextlib import contextmanager
from unittest.mock import MagicMock, patch

import pytest

from rds_connect.auth import AuthenticationResolver
from rds_connect.client.engines import EngineFamily
from rds_connect.config import AppConfig, ConnectConfig
from rds_connect.connector import Connector
from rds_connect.discovery.models import ListingResult, TargetDetail
from rds_connect.discovery.tag_filter import TagFilterSet
from rds_connect.exceptions import (
    MissingDependency,
    NoResourcesFound,
    SecretParseFailed,
    UnsupportedEngine,
)
from rds_connect.selection import SelectionPrompt


def _cluster(identifier="analytics-cluster", engine="aurora-postgresql") -> dict:
    return {
        "DBClusterIdentifier": identifier,
        "Engine": engine,
        "Endpoint": f"{identifier}.cluster-abc.us-east-2.rds.amazonaws.com",
        "ReaderEndpoint": f"{identifier}.cluster-ro-abc.us-east-2.rds.amazonaws.com",
        "Port": 5432,
        "TagList": [],
    }


def _instance(identifier="reports-db", engine="postgres") -> dict:
    return {
        "DBInstanceIdentifier": identifier,
        "Engine": engine,
        "Endpoint": {"Address": f"{identifier}.abc.us-east-2.rds.amazonaws.com", "Port": 5432},
        "TagList": [],
    }


def _api(instances=(), clusters=(), detail=None) -> MagicMock:
    api = MagicMock()
    api.list_instances.return_value = ListingResult(items=list(instances))
    api.list_clusters.return_value = ListingResult(items=list(clusters))
    api.describe_target.return_value = detail or TargetDetail(
        port=5432, database_name="analytics", master_username="postgres",
    )
    return api


def _terminal(text: str):
    @contextmanager
    def terminal():
        yield io.StringIO(text)
    return terminal


class _FakeSession:
    instances: list[_FakeSession] = []

    def __init__(self, plan, password):
        self.plan = plan
        self.password = password
        self.args = None
        self.closed = False
        _FakeSession.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False

    def run(self, args):
        self.args = args
        return 0


@pytest.fixture(autouse=True)
def _docker_on_path():
    _FakeSession.instances = []
    with patch("shutil.which", return_value="/usr/bin/docker"):
        yield


def _connector(api, connect=None, tty="", password="pw") -> Connector:
    config = AppConfig(connect=connect or ConnectConfig())
    resolver = AuthenticationResolver(
        api,
        method=config.connect.auth_method,
        username=config.connect.username,
        password_reader=lambda prompt: password,
    )
    prompt = SelectionPrompt(output=io.StringIO(), terminal=_terminal(tty))
    return Connector(config, api=api, prompt=prompt, resolver=resolver, session_factory=_FakeSession)


class TestConnector:
    def test_selecting_first_entry_resolves_cluster_writer(self):
        api = _api(instances=[_instance()], clusters=[_cluster()])
        assert _connector(api, tty="1\n").run() == 0

        record = api.describe_target.call_args.args[0]
        assert record.identifier == "analytics-cluster"
        assert record.endpoint == "analytics-cluster.cluster-abc.us-east-2.rds.amazonaws.com"

        session = _FakeSession.instances[0]
        assert session.plan == EngineFamily.POSTGRESQL.plan
        assert session.password == "pw"
        assert session.args == [
            "psql",
            "postgresql://postgres@analytics-cluster.cluster-abc.us-east-2.rds.amazonaws.com:5432"
            "/analytics?sslmode=require",
        ]
        assert session.closed

    def test_single_match_connects_without_prompt(self):
        api = _api(instances=[_instance()])
        # An empty terminal would abort if it were read
        assert _connector(api, tty="").run() == 0
        assert api.describe_target.call_args.args[0].identifier == "reports-db"

    def test_no_resources(self):
        with pytest.raises(NoResourcesFound):
            _connector(_api()).run()
        assert _FakeSession.instances == []

    def test_ssl_disabled(self):
        api = _api(instances=[_instance()])
        _connector(api, connect=ConnectConfig(ssl=False)).run()
        assert "sslmode" not in _FakeSession.instances[0].args[1]

    def test_secret_parse_failure_aborts_before_launch(self):
        api = _api(
            instances=[_instance()],
            detail=TargetDetail(
                port=5432, database_name="app", master_username="postgres",
                iam_auth_enabled=False, secret_arn="arn:aws:secretsmanager:us-east-2:1:secret:db",
            ),
        )
        api.get_secret_string.return_value = '{"username":"admin"}'
        with pytest.raises(SecretParseFailed):
            _connector(api).run()
        assert _FakeSession.instances == []

    def test_unsupported_engine_checked_before_credentials(self):
        api = _api(instances=[_instance(engine="db2-se")])
        reader = MagicMock(return_value="pw")
        connector = _connector(api)
        connector._resolver = AuthenticationResolver(api, password_reader=reader)
        with pytest.raises(UnsupportedEngine):
            connector.run()
        reader.assert_not_called()

    def test_tag_filters_threaded_through(self):
        tagged = _instance("tagged")
        tagged["TagList"] = [{"Key": "Environment", "Value": "prod"}]
        api = _api(instances=[tagged, _instance("untagged")])
        connect = ConnectConfig(tags=TagFilterSet.from_tokens(["Environment=prod"]))
        _connector(api, connect=connect).run()
        assert api.describe_target.call_args.args[0].identifier == "tagged"

    def test_missing_docker(self):
        with patch("shutil.which", return_value=None):
            with pytest.raises(MissingDependency):
                _connector(_api(instances=[_instance()])).run()
