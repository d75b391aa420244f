"""Credential resolution: explicit method or IAM > Secret > Manual auto-detection."""

from __future__ import annotations

import getpass
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from .discovery import DatabaseAPI
from .discovery.models import ResourceRecord, TargetDetail
from .exceptions import (
    ConfigError,
    EmptyPassword,
    NoSecretConfigured,
    SecretParseFailed,
    TargetResolutionError,
    TokenGenerationFailed,
)

logger = logging.getLogger(__name__)


class AuthMethod(str, Enum):
    MANUAL = "manual"
    IAM = "iam"
    SECRET = "secret"

    @classmethod
    def parse(cls, value: str) -> AuthMethod:
        try:
            return cls(value)
        except ValueError:
            raise ConfigError("Authentication type must be: iam, secret, or manual") from None


@dataclass(frozen=True)
class AuthContext:
    method: AuthMethod
    username: str
    secret: str = field(repr=False)


# Candidates in priority order; the first applicable one is chosen and never falls back.
DETECTION_ORDER: tuple[tuple[AuthMethod, Callable[[TargetDetail], bool]], ...] = (
    (AuthMethod.IAM, lambda detail: detail.iam_auth_enabled),
    (AuthMethod.SECRET, lambda detail: bool(detail.secret_arn)),
    (AuthMethod.MANUAL, lambda detail: True),
)


def detect_method(detail: TargetDetail) -> AuthMethod:
    for method, applies in DETECTION_ORDER:
        if applies(detail):
            return method
    # Should not reach here, MANUAL always applies
    raise RuntimeError("No authentication method applies")


class AuthenticationResolver:
    """Produces an AuthContext for one target. Credentials are never logged."""

    def __init__(
        self,
        api: DatabaseAPI,
        method: str | None = None,
        username: str | None = None,
        password_reader: Callable[[str], str] = getpass.getpass,
    ):
        self._api = api
        self._method = AuthMethod.parse(method) if method else None
        self._username = username or None
        self._read_password = password_reader

    def choose_method(self, detail: TargetDetail) -> AuthMethod:
        if self._method is not None:
            return self._method
        logger.info("Auto-detecting authentication method...")
        method = detect_method(detail)
        logger.debug("Selected authentication method %s", method.value, extra={"auth_method": method.value})
        return method

    def resolve(self, record: ResourceRecord, detail: TargetDetail) -> AuthContext:
        if not detail.master_username and not self._username:
            raise TargetResolutionError("Failed to retrieve master username. Specify username with -u")

        method = self.choose_method(detail)
        if method is AuthMethod.IAM:
            return self._iam(record, detail)
        if method is AuthMethod.SECRET:
            return self._secret(detail)
        return self._manual(detail)

    def _manual(self, detail: TargetDetail) -> AuthContext:
        password = self._read_password("Enter database password: ")
        if not password:
            raise EmptyPassword("Password cannot be empty")
        return AuthContext(
            method=AuthMethod.MANUAL,
            username=self._username or detail.master_username,
            secret=password,
        )

    def _iam(self, record: ResourceRecord, detail: TargetDetail) -> AuthContext:
        logger.info("Generating IAM authentication token...")
        # The token is valid for 15 minutes and is used once, immediately.
        token = self._api.generate_auth_token(record.endpoint, detail.port, detail.master_username)
        if not token:
            raise TokenGenerationFailed("Failed to generate IAM authentication token")
        return AuthContext(method=AuthMethod.IAM, username=detail.master_username, secret=token)

    def _secret(self, detail: TargetDetail) -> AuthContext:
        if not detail.secret_arn:
            raise NoSecretConfigured("No AWS Secrets Manager secret found for this database")

        logger.info("Retrieving credentials from AWS Secrets Manager...")
        secret_string = self._api.get_secret_string(detail.secret_arn)
        try:
            payload = json.loads(secret_string)
        except ValueError:
            raise SecretParseFailed("Failed to parse credentials from Secrets Manager") from None

        if not isinstance(payload, dict):
            raise SecretParseFailed("Failed to parse credentials from Secrets Manager")
        username = payload.get("username")
        password = payload.get("password")
        if not username or not password:
            raise SecretParseFailed("Failed to parse credentials from Secrets Manager")

        return AuthContext(method=AuthMethod.SECRET, username=str(username), secret=str(password))
