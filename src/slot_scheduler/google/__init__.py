"""Google OAuth credential management."""

from slot_scheduler.google.exceptions import (
    AuthorizationError,
    CredentialsNotFoundError,
    GoogleAuthError,
    TokenError,
    TokenExchangeError,
    TokenRefreshError,
)
from slot_scheduler.google.interactive import ConsoleAuthorizer, InteractiveAuthorizer
from slot_scheduler.google.oauth import AuthorizationRequest, CredentialManager
from slot_scheduler.google.pkce import PkceChallenge
from slot_scheduler.google.store import (
    Credential,
    CredentialStore,
    JsonFileStorage,
    KeyValueStorage,
    MemoryStorage,
)

__all__ = [
    "CredentialManager",
    "AuthorizationRequest",
    "PkceChallenge",
    "Credential",
    "CredentialStore",
    "KeyValueStorage",
    "JsonFileStorage",
    "MemoryStorage",
    "InteractiveAuthorizer",
    "ConsoleAuthorizer",
    "GoogleAuthError",
    "CredentialsNotFoundError",
    "AuthorizationError",
    "TokenError",
    "TokenExchangeError",
    "TokenRefreshError",
]
