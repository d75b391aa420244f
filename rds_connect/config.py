"""Frozen dataclasses for configuration, YAML loader with env-var interpolation, CLI overlay."""

from __future__ import annotations

import dataclasses
import logging
import os
import re
import types
import typing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .discovery.tag_filter import TagFilterSet
from .exceptions import ConfigError

DEFAULT_REGION = "us-east-2"

ENDPOINT_TYPES = ("reader", "writer")
AUTH_METHODS = ("iam", "secret", "manual")
LOG_FORMATS = ("plain", "text", "json")

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")
_UNSAFE_ARGUMENT = re.compile(r"[$`\\\"';]")


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    """Recursively interpolate env vars in strings throughout a nested structure."""
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


@dataclass(frozen=True)
class AWSConfig:
    region: str = ""  # empty = AWS_REGION, AWS_DEFAULT_REGION, then us-east-2
    profile: str = ""  # empty = AWS_PROFILE or the default boto3 credential chain


@dataclass(frozen=True)
class ConnectConfig:
    tags: TagFilterSet = field(default_factory=TagFilterSet)
    endpoint_type: str | None = None  # None = both writer and reader
    auth_method: str | None = None  # None = auto-detect
    username: str | None = None
    ssl: bool = True


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "plain"  # "plain", "text" or "json"


@dataclass(frozen=True)
class AppConfig:
    aws: AWSConfig = field(default_factory=AWSConfig)
    connect: ConnectConfig = field(default_factory=ConnectConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _get_dataclass_type(ft: Any) -> type | None:
    """Return the underlying dataclass type from a type annotation (handles Optional/X|None)."""
    if isinstance(ft, type) and hasattr(ft, "__dataclass_fields__"):
        return ft
    if isinstance(ft, types.UnionType):
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    origin = getattr(ft, "__origin__", None)
    if origin is typing.Union:
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    return None


def _build_nested(cls: type, data: dict[str, Any]) -> Any:
    """Construct a frozen dataclass, recursively building nested dataclass fields."""
    if not isinstance(data, dict):
        return data
    field_types = {f.name: f.type for f in cls.__dataclass_fields__.values()}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            continue
        ft = field_types[key]
        # Resolve string annotations to actual types in the module scope
        if isinstance(ft, str):
            ft = eval(ft, globals(), {cls.__name__: cls})  # noqa: S307
        dc_type = _get_dataclass_type(ft)
        if dc_type is not None and value is None:
            continue  # empty YAML section keeps the defaults
        if dc_type is not None and not isinstance(value, dict):
            raise ConfigError(f"Configuration section '{key}' must be a mapping")
        if dc_type is not None:
            kwargs[key] = _build_nested(dc_type, value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


def _parse_tags(raw_tags: Any) -> TagFilterSet:
    if raw_tags is None:
        return TagFilterSet()
    if isinstance(raw_tags, dict):
        raw_tags = [f"{k}={v}" for k, v in raw_tags.items()]
    if not isinstance(raw_tags, list):
        raise ConfigError("connect.tags must be a list of KEY=VALUE strings")
    return TagFilterSet.from_tokens(str(t) for t in raw_tags)


def load_config(path: str | Path) -> AppConfig:
    """Load and validate configuration from a YAML file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping")

    raw = _walk_and_interpolate(raw)
    connect_raw = raw.get("connect")
    if isinstance(connect_raw, dict) and "tags" in connect_raw:
        connect_raw = dict(connect_raw)
        connect_raw["tags"] = _parse_tags(connect_raw["tags"])
        raw = {**raw, "connect": connect_raw}

    config = _build_nested(AppConfig, raw)
    validate(config)
    return config


def default_region() -> str:
    return os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or DEFAULT_REGION


def parse_bool(value: str) -> bool:
    """Parse the literal strings ``true`` and ``false``."""
    if value == "true":
        return True
    if value == "false":
        return False
    raise ConfigError("SSL mode must be: true or false")


def build_config(
    base: AppConfig | None = None,
    *,
    tags: list[str] | None = None,
    profile: str | None = None,
    region: str | None = None,
    endpoint_type: str | None = None,
    auth_method: str | None = None,
    username: str | None = None,
    ssl: str | None = None,
    log_level: str | None = None,
    log_format: str | None = None,
) -> AppConfig:
    """Overlay command-line values on ``base`` and fill unset AWS settings from the environment."""
    config = base or AppConfig()

    aws = config.aws
    aws = dataclasses.replace(
        aws,
        region=region or aws.region or default_region(),
        profile=profile or aws.profile or os.environ.get("AWS_PROFILE", ""),
    )

    connect = config.connect
    if tags:
        # Command-line filters add to those from the config file
        connect = dataclasses.replace(
            connect, tags=TagFilterSet([*connect.tags, *TagFilterSet.from_tokens(tags)])
        )
    overrides: dict[str, Any] = {}
    if endpoint_type is not None:
        overrides["endpoint_type"] = endpoint_type
    if auth_method is not None:
        overrides["auth_method"] = auth_method
    if username is not None:
        overrides["username"] = username
    if ssl is not None:
        overrides["ssl"] = parse_bool(ssl)
    connect = dataclasses.replace(connect, **overrides)

    logging_config = config.logging
    if log_level is not None or log_format is not None:
        logging_config = dataclasses.replace(
            logging_config,
            level=log_level or logging_config.level,
            format=log_format or logging_config.format,
        )

    result = AppConfig(aws=aws, connect=connect, logging=logging_config)
    validate(result)
    return result


def validate(config: AppConfig) -> None:
    """Validate configuration values."""
    connect = config.connect

    _require_str("aws.region", config.aws.region)
    _require_str("aws.profile", config.aws.profile)
    _require_str("connect.endpoint_type", connect.endpoint_type, optional=True)
    _require_str("connect.auth_method", connect.auth_method, optional=True)
    _require_str("connect.username", connect.username, optional=True)
    _require_str("logging.level", config.logging.level)
    _require_str("logging.format", config.logging.format)

    if connect.endpoint_type and connect.endpoint_type not in ENDPOINT_TYPES:
        raise ConfigError("Endpoint type must be: reader or writer")

    if connect.auth_method and connect.auth_method not in AUTH_METHODS:
        raise ConfigError("Authentication type must be: iam, secret, or manual")

    if not isinstance(connect.ssl, bool):
        raise ConfigError("SSL mode must be: true or false")

    if not isinstance(connect.tags, TagFilterSet):
        raise ConfigError("connect.tags must be a list of KEY=VALUE strings")

    if _UNSAFE_ARGUMENT.search(config.aws.region):
        raise ConfigError("Region contains unsafe characters")

    if _UNSAFE_ARGUMENT.search(config.aws.profile):
        raise ConfigError("Profile contains unsafe characters")

    if not isinstance(logging.getLevelName(config.logging.level.upper()), int):
        raise ConfigError(f"Unknown log level: {config.logging.level}")

    if config.logging.format not in LOG_FORMATS:
        raise ConfigError("logging.format must be 'plain', 'text' or 'json'")


def _require_str(name: str, value: Any, optional: bool = False) -> None:
    if value is None and optional:
        return
    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string")
