"""Argument parsing, configuration loading, and connector bootstrap."""

from __future__ import annotations

import argparse
import logging
import sys

from .client.session import SessionTerminated
from .config import LOG_FORMATS, AppConfig, build_config, load_config
from .connector import Connector
from .exceptions import ConnectorError, ValidationError
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

EPILOG = """\
environment variables:
  AWS_PROFILE              AWS profile (can be overridden with -p)
  AWS_REGION               AWS region (can be overridden with -r)
  AWS_DEFAULT_REGION       AWS region fallback if AWS_REGION not set
  AWS_ACCESS_KEY_ID        AWS access key ID
  AWS_SECRET_ACCESS_KEY    AWS secret access key
  AWS_SESSION_TOKEN        AWS session token for temporary credentials

examples:
  rds-connect
  rds-connect -t Environment=prod
  rds-connect -t Environment=prod -t Application=api -a iam
  rds-connect -t Environment=staging -e writer
  rds-connect -u myuser -a manual
  rds-connect -t Environment=dev -s false
"""


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with status 1 like every other validation failure."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"ERROR: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="rds-connect",
        description="Find an RDS or Aurora database by tag and open a client session to it",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-t", dest="tags", action="append", default=[], metavar="KEY=VALUE",
        help="Tag filter (can be specified multiple times for AND logic)",
    )
    parser.add_argument("-p", dest="profile", metavar="PROFILE", help="AWS profile")
    parser.add_argument("-r", dest="region", metavar="REGION", help="AWS region (default: us-east-2)")
    parser.add_argument(
        "-e", dest="endpoint_type", metavar="ENDPOINT_TYPE",
        help="Aurora endpoint type (reader or writer, default: both)",
    )
    parser.add_argument(
        "-a", dest="auth_method", metavar="AUTH_TYPE",
        help="Authentication type (iam, secret, or manual, default: auto-detect)",
    )
    parser.add_argument("-u", dest="username", metavar="DB_USER", help="Database user for manual authentication")
    parser.add_argument(
        "-s", dest="ssl", metavar="SSL_MODE",
        help="Use SSL connection (true or false, default: true)",
    )
    parser.add_argument("-c", "--config", help="Path to an optional YAML configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-format", choices=LOG_FORMATS, help="Diagnostic output format")
    return parser


def resolve_config(args: argparse.Namespace) -> AppConfig:
    base = load_config(args.config) if args.config else None
    return build_config(
        base,
        tags=args.tags,
        profile=args.profile,
        region=args.region,
        endpoint_type=args.endpoint_type,
        auth_method=args.auth_method,
        username=args.username,
        ssl=args.ssl,
        log_level="DEBUG" if args.verbose else None,
        log_format=args.log_format,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Validation fails fast, before logging or any AWS call
    try:
        config = resolve_config(args)
    except ValidationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.logging)

    try:
        return Connector(config).run()
    except ConnectorError as exc:
        logger.error("%s", exc)
        return 1
    except SessionTerminated as exc:
        logger.info("Terminated by %s", exc)
        return 128 + exc.signum
    except KeyboardInterrupt:
        print(file=sys.stderr)
        logger.info("Interrupted")
        return 130


def run() -> None:
    sys.exit(main())
