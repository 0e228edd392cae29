"""Custom exceptions for the OAuth token generator.

This module provides structured error handling with specific exception types
for each phase of the authorization flow. All exceptions inherit from
OAuthTokenGeneratorError.
"""
from typing import Optional


class OAuthTokenGeneratorError(Exception):
    """Base exception for all oauth-token-generator errors.

    Attributes:
        message: Human-readable error description.
        phase: Optional name of the flow phase that failed.
    """

    def __init__(self, message: str, phase: Optional[str] = None) -> None:
        self.message = message
        self.phase = phase
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the error message, optionally prefixed with the phase."""
        if self.phase:
            return f"[{self.phase}] {self.message}"
        return self.message


class ConfigurationError(OAuthTokenGeneratorError):
    """Raised when a configuration value is invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(message, phase="configuration")


class BindError(OAuthTokenGeneratorError):
    """Raised when the local callback port cannot be bound."""

    def __init__(self, port: int, reason: str) -> None:
        self.port = port
        super().__init__(
            f"Could not listen on localhost:{port}: {reason}", phase="callback listener"
        )


class CallbackServerError(OAuthTokenGeneratorError):
    """Raised when the callback server fails to come up."""

    def __init__(self, message: str) -> None:
        super().__init__(message, phase="callback listener")


class CallbackValidationError(OAuthTokenGeneratorError):
    """Raised for a redirect request that does not complete the authorization.

    Never leaves the listener: it is turned into an HTTP reply and the
    listener keeps waiting.

    Attributes:
        status_code: HTTP status to reply with.
        body: Exact response body to send.
    """

    def __init__(self, body: str, status_code: int = 404) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(body, phase="callback")


class CallbackTimeoutError(OAuthTokenGeneratorError):
    """Raised when no valid redirect arrives within the allowed time."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(
            f"No authorization response received within {timeout:g} seconds",
            phase="callback",
        )


class ListenerCancelledError(OAuthTokenGeneratorError):
    """Raised when the listener is stopped while a wait is pending."""

    def __init__(self) -> None:
        super().__init__(
            "Callback listener was stopped before a code arrived", phase="callback"
        )


class TokenExchangeError(OAuthTokenGeneratorError):
    """Raised when the token endpoint rejects a request or returns garbage.

    Attributes:
        status_code: HTTP status returned by the provider, if any.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message, phase="token exchange")


class CredentialParseError(OAuthTokenGeneratorError):
    """Raised when the credential file is missing keys or has bad values."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        if path:
            message = f"{message} (file: {path})"
        super().__init__(message, phase="credential file")


class PersistenceError(OAuthTokenGeneratorError):
    """Raised when the credential file cannot be written."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Could not write {path}: {reason}", phase="credential file")


class BrowserLaunchError(OAuthTokenGeneratorError):
    """Raised when no browser opener could open the authorization URL."""

    def __init__(self, url: str, attempts: list[str]) -> None:
        self.url = url
        self.attempts = attempts
        tried = ", ".join(attempts) if attempts else "none"
        super().__init__(f"Could not open a browser (tried: {tried})", phase="browser")


# Standard error message format helper
def format_error(action: str, error: Exception) -> str:
    """Format an error message consistently.

    Args:
        action: The action that failed (e.g., "Authorization", "Refresh").
        error: The exception that occurred.

    Returns:
        Formatted error string.
    """
    if isinstance(error, OAuthTokenGeneratorError):
        if error.phase:
            return f"{action} failed during {error.phase}: {error.message}"
        return f"{action} failed: {error.message}"
    return f"{action} failed: {str(error)}"
