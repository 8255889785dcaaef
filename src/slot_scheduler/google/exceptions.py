"""Google authentication exceptions."""

from slot_scheduler.exceptions import ConfigurationError, SchedulerError


class GoogleAuthError(SchedulerError):
    """Base exception for Google authentication errors."""

    kind = "google_auth"


class CredentialsNotFoundError(ConfigurationError):
    """Raised when no OAuth client id or secret can be resolved."""

    def __init__(self, what: str, hint: str):
        self.what = what
        super().__init__(f"Google OAuth {what} is not configured. {hint}")


class AuthorizationError(GoogleAuthError):
    """Raised when interactive consent does not yield an authorization code."""

    kind = "authorization"


class TokenError(GoogleAuthError):
    """Raised when the token endpoint rejects a request."""

    kind = "token"

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class TokenExchangeError(TokenError):
    """Raised when exchanging an authorization code fails."""

    kind = "token_exchange"


class TokenRefreshError(TokenError):
    """Raised when a refresh-token grant is unavailable or rejected."""

    kind = "token_refresh"
