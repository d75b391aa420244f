"""Custom exception hierarchy for the database connector."""


class ConnectorError(Exception):
    """Base exception for all connector errors."""


class ValidationError(ConnectorError):
    """Malformed command-line flag, tag filter, or configuration value."""


class MalformedFilter(ValidationError):
    """Tag filter token is not of the form KEY=VALUE."""


class UnsafeFilterValue(ValidationError):
    """Tag filter key or value contains characters unsafe for a query expression."""


class ConfigError(ValidationError):
    """Invalid or missing configuration."""


class DiscoveryError(ConnectorError):
    """Resource discovery failed."""


class NoResourcesFound(DiscoveryError):
    """No database matched the supplied filters."""


class SelectionError(ConnectorError):
    """Interactive target selection failed."""


class InvalidSelection(SelectionError):
    """Operator entered something that is not a menu index. Recoverable."""


class TerminalUnavailable(SelectionError):
    """No interactive terminal could be read from."""


class TargetResolutionError(ConnectorError):
    """A required field of the selected target could not be resolved."""


class AuthResolutionError(ConnectorError):
    """Credentials for the selected target could not be resolved."""


class TokenGenerationFailed(AuthResolutionError):
    """The IAM authentication token could not be generated."""


class NoSecretConfigured(AuthResolutionError):
    """Secret authentication was requested but the target has no managed secret."""


class SecretRetrievalFailed(AuthResolutionError):
    """Secrets Manager did not return the secret value."""


class SecretParseFailed(AuthResolutionError):
    """Secret value is not JSON with a username and password."""


class EmptyPassword(AuthResolutionError):
    """No password was entered at the prompt."""


class DispatchError(ConnectorError):
    """The database client could not be launched."""


class UnsupportedEngine(DispatchError):
    """The target's engine has no known client."""

    def __init__(self, engine: str):
        super().__init__(f"Unsupported database engine: {engine}")
        self.engine = engine


class MissingDependency(DispatchError):
    """A required external program is not on PATH."""
