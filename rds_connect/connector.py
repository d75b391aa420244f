"""Single-shot pipeline: discover -> select -> describe -> authenticate -> connect."""

from __future__ import annotations

import logging

from .auth import AuthenticationResolver
from .client.engines import Connection, EngineFamily
from .client.session import ClientSession, require_runtime
from .config import AppConfig
from .discovery import DatabaseAPI
from .discovery.service import ResourceDiscoveryService
from .selection import SelectionPrompt

logger = logging.getLogger(__name__)


class Connector:
    """Resolves exactly one database from the configuration and hands the terminal to its client."""

    def __init__(
        self,
        config: AppConfig,
        api: DatabaseAPI | None = None,
        prompt: SelectionPrompt | None = None,
        resolver: AuthenticationResolver | None = None,
        session_factory=ClientSession,
    ):
        self._config = config
        self._api: DatabaseAPI = api if api is not None else self._build_api(config)
        self._prompt = prompt or SelectionPrompt()
        self._resolver = resolver or AuthenticationResolver(
            self._api,
            method=config.connect.auth_method,
            username=config.connect.username,
        )
        self._session_factory = session_factory

    @staticmethod
    def _build_api(config: AppConfig) -> DatabaseAPI:
        from .discovery.rds_client import RDSClient  # lazy import keeps boto3 out of --help
        return RDSClient(config.aws)

    def run(self) -> int:
        """Run the pipeline once. Returns the database client's exit status."""
        connect = self._config.connect
        require_runtime()

        service = ResourceDiscoveryService(self._api, connect.tags, connect.endpoint_type)
        record = self._prompt.select(service.discover())

        detail = self._api.describe_target(record)
        logger.info(
            "Found database: %s (%s:%d/%s)",
            record.identifier, record.endpoint, detail.port, detail.database_name,
            extra={"identifier": record.identifier, "endpoint": record.endpoint, "engine": record.engine},
        )

        # Resolve the client before prompting for credentials
        family = EngineFamily.for_engine(record.engine)
        auth = self._resolver.resolve(record, detail)

        connection = Connection(
            host=record.endpoint,
            port=detail.port,
            database=detail.database_name,
            username=auth.username,
            ssl=connect.ssl,
        )
        logger.info("Connecting to %s as %s...", record.identifier, auth.username)
        with self._session_factory(family.plan, auth.secret) as session:
            return session.run(family.client_args(connection))
