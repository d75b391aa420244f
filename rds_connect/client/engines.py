"""Engine families and the client invocation each one connects with."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

from ..exceptions import UnsupportedEngine

# sqlplus takes the password inside the connect string; it is expanded from the
# container environment here, with user and address passed as positional args.
_SQLPLUS_SCRIPT = 'exec sqlplus "$1/$ORACLE_PASSWORD@$2"'


@dataclass(frozen=True)
class Connection:
    """Everything the client invocation is built from."""

    host: str
    port: int
    database: str
    username: str
    ssl: bool = True


def _psql_args(conn: Connection) -> list[str]:
    url = (
        f"postgresql://{quote(conn.username, safe='')}@{conn.host}:{conn.port}"
        f"/{quote(conn.database, safe='')}"
    )
    if conn.ssl:
        url += "?sslmode=require"
    return ["psql", url]


def _mysql_args(conn: Connection) -> list[str]:
    args = [
        "mysql",
        "-h", conn.host,
        "-P", str(conn.port),
        "-u", conn.username,
        "-D", conn.database,
    ]
    if conn.ssl:
        args.append("--ssl-mode=REQUIRED")
    return args


def _sqlplus_args(conn: Connection) -> list[str]:
    return ["sh", "-c", _SQLPLUS_SCRIPT, "sqlplus", conn.username, f"//{conn.host}:{conn.port}/{conn.database}"]


def _sqlcmd_args(conn: Connection) -> list[str]:
    args = [
        "sqlcmd",
        "-S", f"{conn.host},{conn.port}",
        "-U", conn.username,
        "-d", conn.database,
    ]
    if conn.ssl:
        args.append("-N")
    return args


@dataclass(frozen=True)
class ConnectionPlan:
    client_image: str
    password_env: str
    engines: frozenset[str]
    invocation: Callable[[Connection], list[str]]


class EngineFamily(Enum):
    POSTGRESQL = ConnectionPlan(
        client_image="postgres:alpine",
        password_env="PGPASSWORD",
        engines=frozenset({"postgres", "aurora-postgresql"}),
        invocation=_psql_args,
    )
    MYSQL = ConnectionPlan(
        client_image="mysql:latest",
        password_env="MYSQL_PWD",
        engines=frozenset({"mysql", "aurora-mysql", "mariadb"}),
        invocation=_mysql_args,
    )
    ORACLE = ConnectionPlan(
        client_image="container-registry.oracle.com/database/instantclient:latest",
        password_env="ORACLE_PASSWORD",
        engines=frozenset({"oracle-ee", "oracle-ee-cdb", "oracle-se2", "oracle-se2-cdb"}),
        invocation=_sqlplus_args,
    )
    SQLSERVER = ConnectionPlan(
        client_image="mcr.microsoft.com/mssql-tools",
        password_env="SQLCMDPASSWORD",
        engines=frozenset({"sqlserver-ee", "sqlserver-se", "sqlserver-ex", "sqlserver-web"}),
        invocation=_sqlcmd_args,
    )

    @property
    def plan(self) -> ConnectionPlan:
        return self.value

    @classmethod
    def for_engine(cls, engine: str) -> EngineFamily:
        for family in cls:
            if engine in family.plan.engines:
                return family
        raise UnsupportedEngine(engine)

    def client_args(self, conn: Connection) -> list[str]:
        """The client command line run inside the container. The password is never part of it."""
        return self.plan.invocation(conn)
