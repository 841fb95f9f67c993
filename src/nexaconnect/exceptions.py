"""Library exceptions."""

from __future__ import annotations


class NexaConnectError(Exception):
    """Base exception for the library."""

    error_type = "unknown"
    default_error_code: str | None = None
    retryable = False

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        detail: str | None = None,
        user_message: str | None = None,
    ) -> None:
        text = message if message is not None else (detail or "")
        super().__init__(text)
        self.error_code = error_code if error_code is not None else self.default_error_code
        self.detail = detail if detail is not None else text
        self.user_message = user_message


class ValidationError(NexaConnectError):
    """Raised when inputs fail validation before dispatch."""

    error_type = "validation"
    default_error_code = "validation_error"


class AuthError(NexaConnectError):
    """Raised when authentication fails or a session is required."""

    error_type = "auth"
    default_error_code = "auth_error"


class NotFoundError(NexaConnectError):
    """Raised when a referenced entity does not exist."""

    error_type = "not_found"
    default_error_code = "not_found"


class FeatureUnavailableError(NexaConnectError):
    """Raised when the provider's tier does not include a feature."""

    error_type = "feature"
    default_error_code = "tier_required"


class NotConfiguredError(NexaConnectError):
    """Raised when no remote backend is configured (use local mode)."""

    error_type = "not_configured"
    default_error_code = "not_configured"


class ConfigError(NexaConnectError):
    """Raised when configuration values are invalid."""

    error_type = "config"
    default_error_code = "config_error"


class NetworkError(NexaConnectError):
    """Raised when network communication fails."""

    error_type = "network"
    default_error_code = "network_error"
    retryable = True


class RequestTimeoutError(NetworkError):
    """Raised when a remote request times out."""

    default_error_code = "timeout"


class RemoteError(NexaConnectError):
    """Raised when the remote backend returns an error or malformed data."""

    error_type = "remote"
    default_error_code = "remote_error"


class RateLimitError(RemoteError):
    """Raised when the remote backend rate limits the client."""

    default_error_code = "rate_limit"
    retryable = True


class ServiceUnavailableError(RemoteError):
    """Raised when the remote backend is temporarily unavailable."""

    default_error_code = "service_unavailable"
    retryable = True


class CheckoutError(NexaConnectError):
    """Raised when a checkout or billing redirect cannot be created."""

    error_type = "checkout"
    default_error_code = "checkout_error"
