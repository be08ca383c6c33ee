"""Exception hierarchy for QuickBooks MCP.

Provides specific exception types for each failure mode of the
authenticated request pipeline so the tool boundary can report them
precisely.
"""

from __future__ import annotations


class QuickBooksError(Exception):
    """Base exception for all QuickBooks MCP errors."""

    pass


class ConfigurationError(QuickBooksError):
    """Raised when required settings are missing or invalid."""

    pass


class PersistenceError(QuickBooksError):
    """Raised when credentials cannot be saved to or loaded from disk."""

    pass


class NotAuthenticatedError(QuickBooksError):
    """Raised when no access token is held in memory."""

    def __init__(self, message: str = "Not authenticated. Run auth first."):
        super().__init__(message)


class AuthorizationError(QuickBooksError):
    """Raised when the interactive authorization flow fails."""

    pass


class StateValidationError(AuthorizationError):
    """Raised when the OAuth state parameter is missing or does not match.

    This indicates either a stale callback or a forged one.
    """

    pass


class AuthorizationCancelledError(AuthorizationError):
    """Raised when the user never completes authorization in time."""

    pass


class RefreshUnavailableError(QuickBooksError):
    """Raised when a refresh is needed but no refresh token is held."""

    def __init__(
        self,
        message: str = "No refresh_token available; re-authentication required.",
    ):
        super().__init__(message)


class TokenError(QuickBooksError):
    """Raised when the token endpoint rejects a request.

    Carries the HTTP status (when a response was received) and the raw body.
    """

    def __init__(self, message: str, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class TokenExchangeError(TokenError):
    """Raised when authorization code to token exchange fails."""

    pass


class RefreshFailedError(TokenError):
    """Raised when token refresh fails."""

    pass


class RemoteApiError(QuickBooksError):
    """Raised for non-2xx responses other than 401, and for transport failures."""

    def __init__(self, message: str, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class UnauthorizedAfterRefreshError(QuickBooksError):
    """Raised when a request is still rejected with 401 after a token refresh."""

    def __init__(self, body: str = ""):
        super().__init__("Unauthorized after token refresh.")
        self.status = 401
        self.body = body


class EntityNotFoundError(QuickBooksError):
    """Raised when the fetch before an update yields no usable record."""

    pass
