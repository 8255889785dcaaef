"""Google OAuth credential lifecycle with PKCE.

This module keeps a Google Calendar bearer token usable across runs:
- Validity check against the stored expiry with a 60 second margin
- Refresh-token grant, falling back to interactive consent when refresh fails
- Interactive authorization-code grant protected by PKCE (S256)

Client id resolution order:
    config.json client_id -> SLOT_SCHEDULER_CLIENT_ID -> google/credentials.json
Client secret resolution order:
    config.json client_secret -> SLOT_SCHEDULER_CLIENT_SECRET
"""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl, urlparse

import httpx
from authlib.common.security import generate_token
from authlib.integrations.base_client import OAuthError
from authlib.integrations.httpx_client import AsyncOAuth2Client
from authlib.oauth2.rfc6749.errors import MismatchingStateException, MissingCodeException
from authlib.oauth2.rfc6749.parameters import parse_authorization_code_response

from slot_scheduler.config import (
    CLIENT_ID_ENV,
    CLIENT_SECRET_ENV,
    GOOGLE_CREDENTIALS,
    SchedulerConfig,
    load_config,
)
from slot_scheduler.exceptions import ConfigurationError
from slot_scheduler.google.exceptions import (
    AuthorizationError,
    CredentialsNotFoundError,
    TokenError,
    TokenExchangeError,
    TokenRefreshError,
)
from slot_scheduler.google.interactive import ConsoleAuthorizer, InteractiveAuthorizer
from slot_scheduler.google.pkce import PkceChallenge
from slot_scheduler.google.store import Credential, CredentialStore

logger = logging.getLogger(__name__)


SCOPES = {
    "calendar": "https://www.googleapis.com/auth/calendar",
    "calendar_events": "https://www.googleapis.com/auth/calendar.events",
    "calendar_readonly": "https://www.googleapis.com/auth/calendar.readonly",
}


@dataclass(frozen=True)
class AuthorizationRequest:
    """State for a single interactive authorization attempt. Never persisted."""

    client_id: str
    redirect_uri: str
    pkce: PkceChallenge
    state: str

    @property
    def code_verifier(self) -> str:
        return self.pkce.verifier

    @property
    def code_challenge(self) -> str:
        return self.pkce.challenge


class CredentialManager:
    """Owns the stored Google credential and the OAuth state machine.

    Example:
        >>> manager = CredentialManager()
        >>> if not manager.is_authenticated():
        ...     await manager.start_auth_flow()
        >>> token = await manager.get_access_token()
    """

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"
    DEFAULT_EXPIRES_IN = 3600

    def __init__(
        self,
        store: CredentialStore | None = None,
        authorizer: InteractiveAuthorizer | None = None,
        config_loader: Callable[[], SchedulerConfig] = load_config,
        transport: httpx.AsyncBaseTransport | None = None,
        scopes: list[str] | None = None,
        credentials_path: str | Path | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the credential manager.

        Args:
            store: Credential persistence. Defaults to google/token.json.
            authorizer: Interactive consent collaborator. Defaults to the console flow.
            config_loader: Callable returning the current SchedulerConfig.
            transport: httpx transport for Google's OAuth endpoints. Defaults to the network.
            scopes: Scope names (e.g. ["calendar"]) or full URLs. Defaults to ["calendar"].
            credentials_path: OAuth client file used as the last client id fallback.
            clock: Returns the current Unix time.
        """
        self.store = store if store is not None else CredentialStore()
        self.authorizer = authorizer if authorizer is not None else ConsoleAuthorizer()
        self.credentials_path = Path(credentials_path) if credentials_path else GOOGLE_CREDENTIALS
        self.required_scopes = self._resolve_scopes(scopes or ["calendar"])
        self._config_loader = config_loader
        self._clock = clock
        self._transport = transport

    def _resolve_scopes(self, scopes: list[str]) -> list[str]:
        """Resolve scope names to full URLs."""
        resolved = []
        for scope in scopes:
            if scope.startswith("https://"):
                resolved.append(scope)
            elif scope in SCOPES:
                resolved.append(SCOPES[scope])
            else:
                raise ValueError(
                    f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}"
                )
        return resolved

    def _oauth_client(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
    ) -> AsyncOAuth2Client:
        """Create an Authlib client for one grant. Close it after use."""
        client = AsyncOAuth2Client(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            code_challenge_method="S256",
            token_endpoint_auth_method="client_secret_post",
            transport=self._transport,
            timeout=30.0,
        )
        # Authlib only raises for 5xx; a 4xx token response must fail with its body
        client.register_compliance_hook("access_token_response", _raise_for_status)
        client.register_compliance_hook("refresh_token_response", _raise_for_status)
        return client

    # =========================================================================
    # Client credentials
    # =========================================================================

    def _load_client_file(self) -> str | None:
        """Read the client id from a Cloud Console OAuth client file."""
        if not self.credentials_path.exists():
            return None

        try:
            with open(self.credentials_path) as f:
                creds = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid credentials file {self.credentials_path}: {e}") from e

        # Handle both web and installed app credential formats
        if "installed" in creds:
            app_creds = creds["installed"]
        elif "web" in creds:
            app_creds = creds["web"]
        else:
            raise ConfigurationError(
                "Invalid credentials.json format. Expected 'installed' or 'web' key."
            )

        return app_creds.get("client_id") or None

    def resolve_client_id(self, config: SchedulerConfig | None = None) -> str:
        """Resolve the OAuth client id.

        Raises:
            CredentialsNotFoundError: If no source provides a client id.
        """
        config = config if config is not None else self._config_loader()
        client_id = config.client_id or os.environ.get(CLIENT_ID_ENV) or self._load_client_file()
        if not client_id:
            raise CredentialsNotFoundError(
                "client id",
                f"Set client_id in config, {CLIENT_ID_ENV} in .env, "
                f"or import an OAuth client file to {self.credentials_path}.",
            )
        return client_id

    def resolve_client_secret(self, config: SchedulerConfig | None = None) -> str:
        """Resolve the OAuth client secret.

        Raises:
            CredentialsNotFoundError: If no source provides a client secret.
        """
        config = config if config is not None else self._config_loader()
        client_secret = config.client_secret or os.environ.get(CLIENT_SECRET_ENV)
        if not client_secret:
            raise CredentialsNotFoundError(
                "client secret",
                f"Set client_secret in config or {CLIENT_SECRET_ENV} in .env.",
            )
        return client_secret

    # =========================================================================
    # Token state
    # =========================================================================

    def is_authenticated(self) -> bool:
        """Check whether the stored access token is usable right now."""
        credential = self.store.load()
        return credential is not None and credential.is_valid(self._clock())

    def clear_credential(self) -> None:
        """Delete any stored credential."""
        self.store.clear()

    def get_token_info(self) -> dict[str, Any]:
        """Get information about the stored token.

        Returns:
            Dictionary with token status, expiry and refresh availability.
        """
        credential = self.store.load()
        if credential is None:
            return {"status": "no_token"}

        now = self._clock()
        expires_in = credential.expires_at - now
        return {
            "status": "valid" if credential.is_valid(now) else "expired",
            "expires_in": str(timedelta(seconds=int(max(0, expires_in)))),
            "has_refresh_token": bool(credential.refresh_token),
            "scopes": self.required_scopes,
        }

    async def get_access_token(self) -> str:
        """Return a valid access token, refreshing or re-authorizing as needed.

        A refresh failure is not fatal: the manager falls back to the
        interactive flow, which may block on user consent.
        """
        credential = self.store.load()
        if credential is not None and credential.is_valid(self._clock()):
            return credential.access_token

        if credential is not None and credential.refresh_token:
            try:
                credential = await self.refresh(credential)
                return credential.access_token
            except TokenRefreshError as e:
                logger.warning(f"Token refresh failed, re-authorization required: {e}")

        credential = await self.start_auth_flow()
        return credential.access_token

    # =========================================================================
    # Interactive authorization
    # =========================================================================

    def create_authorization_request(self, config: SchedulerConfig | None = None) -> AuthorizationRequest:
        """Prepare client id, redirect URI, PKCE pair and state for one attempt."""
        config = config if config is not None else self._config_loader()
        return AuthorizationRequest(
            client_id=self.resolve_client_id(config),
            redirect_uri=config.effective_redirect_uri(),
            pkce=PkceChallenge.generate(),
            state=generate_token(32),
        )

    def build_authorization_url(
        self, request: AuthorizationRequest, client: AsyncOAuth2Client | None = None
    ) -> str:
        """Build the consent URL for an authorization request."""
        if client is None:
            client = self._oauth_client(request.client_id, redirect_uri=request.redirect_uri)

        url, _ = client.create_authorization_url(
            self.AUTHORIZE_URL,
            state=request.state,
            code_verifier=request.code_verifier,
            scope=" ".join(self.required_scopes),
            access_type="offline",
            # Forces a refresh token even when the user already consented
            prompt="consent",
        )
        return url

    def _check_redirect(self, redirect_url: str, request: AuthorizationRequest) -> None:
        """Reject denied, forged or code-less redirects before any token request."""
        error = dict(parse_qsl(urlparse(redirect_url).query)).get("error")
        if error:
            raise AuthorizationError(f"Google denied authorization: {error}")

        try:
            parse_authorization_code_response(redirect_url, state=request.state)
        except MissingCodeException as e:
            raise AuthorizationError("No authorization code in redirect URL") from e
        except MismatchingStateException as e:
            raise AuthorizationError("OAuth state mismatch in redirect URL") from e

    async def start_auth_flow(self) -> Credential:
        """Run the full interactive PKCE flow and store the resulting credential.

        The stored credential is only replaced once the exchange succeeds.

        Raises:
            CredentialsNotFoundError: If client id or secret cannot be resolved.
            AuthorizationError: If consent is cancelled or yields no code.
            TokenExchangeError: If the token endpoint rejects the code.
        """
        config = self._config_loader()
        request = self.create_authorization_request(config)
        client_secret = self.resolve_client_secret(config)

        async with self._oauth_client(request.client_id, client_secret, request.redirect_uri) as client:
            url = self.build_authorization_url(request, client)
            logger.info("Starting interactive authorization")
            redirect_url = await self.authorizer.launch_interactive(url)
            if not redirect_url:
                raise AuthorizationError("No redirect URL received from Google")

            self._check_redirect(redirect_url, request)

            with _token_errors(TokenExchangeError, "exchange authorization code"):
                token = await client.fetch_token(
                    self.TOKEN_URL,
                    authorization_response=redirect_url,
                    state=request.state,
                    code_verifier=request.code_verifier,
                )

        credential = self._credential_from_response(token, TokenExchangeError)
        self.store.save(credential)
        logger.info("Authorization complete")
        return credential

    # =========================================================================
    # Refresh and revoke
    # =========================================================================

    async def refresh(self, credential: Credential) -> Credential:
        """Exchange the refresh token for a new access token.

        Keeps the existing refresh token when Google does not issue a new one.

        Raises:
            TokenRefreshError: If there is no refresh token or Google rejects it.
        """
        if not credential.refresh_token:
            raise TokenRefreshError("No refresh token available; re-authorize with Google")

        config = self._config_loader()
        client_id = self.resolve_client_id(config)
        client_secret = self.resolve_client_secret(config)

        async with self._oauth_client(client_id, client_secret) as client:
            with _token_errors(TokenRefreshError, "refresh token"):
                token = await client.refresh_token(
                    self.TOKEN_URL, refresh_token=credential.refresh_token
                )

        refreshed = self._credential_from_response(
            token, TokenRefreshError, fallback_refresh_token=credential.refresh_token
        )
        self.store.save(refreshed)
        logger.info("Token refreshed")
        return refreshed

    async def revoke_credential(self) -> None:
        """Revoke the stored token at Google and clear local storage."""
        credential = self.store.load()
        if credential is None:
            logger.warning("No token to revoke")
            return

        token = credential.refresh_token or credential.access_token
        async with self._oauth_client() as client:
            try:
                response = await client.request(
                    "POST", self.REVOKE_URL, data={"token": token}, withhold_token=True
                )
                if not response.is_success:
                    logger.warning(f"Failed to revoke token remotely: {response.text}")
            except httpx.HTTPError as e:
                logger.warning(f"Failed to revoke token remotely: {e}")

        self.clear_credential()
        logger.info("Token revoked successfully")

    def _credential_from_response(
        self,
        data: dict[str, Any],
        error_class: type[TokenError],
        fallback_refresh_token: str | None = None,
    ) -> Credential:
        access_token = data.get("access_token")
        if not access_token:
            raise error_class("Token response did not include an access_token")

        expires_in = data.get("expires_in") or self.DEFAULT_EXPIRES_IN
        return Credential(
            access_token=access_token,
            refresh_token=data.get("refresh_token") or fallback_refresh_token,
            expires_at=self._clock() + float(expires_in),
        )


def _raise_for_status(response: httpx.Response) -> httpx.Response:
    response.raise_for_status()
    return response


@contextmanager
def _token_errors(error_class: type[TokenError], action: str) -> Iterator[None]:
    """Translate Authlib and httpx failures at the token endpoint into ``error_class``."""
    try:
        yield
    except httpx.HTTPStatusError as e:
        response = e.response
        logger.error(f"Failed to {action}: {response.status_code} {response.text}")
        raise error_class(
            f"Failed to {action}: HTTP {response.status_code}: {response.text}",
            status_code=response.status_code,
            body=response.text,
        ) from e
    except OAuthError as e:
        raise error_class(f"Failed to {action}: {e}") from e
    except (httpx.HTTPError, ValueError) as e:
        raise error_class(f"Failed to {action}: {e}") from e
