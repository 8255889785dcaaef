"""Shared fixtures for slot-scheduler tests."""

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from slot_scheduler.config import SchedulerConfig
from slot_scheduler.google import CredentialManager, CredentialStore, InteractiveAuthorizer, MemoryStorage

NOW = 1_800_000_000.0


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeAuthorizer(InteractiveAuthorizer):
    """Answers consent with a canned redirect built from the authorization URL."""

    def __init__(self, code: str | None = "auth-code", redirect: str | None = None, cancel: bool = False):
        self.code = code
        self.redirect = redirect
        self.cancel = cancel
        self.urls: list[str] = []

    async def launch_interactive(self, authorization_url: str) -> str:
        from slot_scheduler.google import AuthorizationError

        self.urls.append(authorization_url)
        if self.cancel:
            raise AuthorizationError("Authorization cancelled by user")
        if self.redirect is not None:
            return self.redirect

        state = parse_qs(urlparse(authorization_url).query)["state"][0]
        if self.code is None:
            return f"http://localhost/?state={state}"
        return f"http://localhost/?state={state}&code={self.code}&scope=calendar"


class TokenEndpoint:
    """Records token endpoint calls and replies with configurable responses."""

    def __init__(self):
        self.requests: list[dict[str, str]] = []
        self.exchange = (
            200,
            {"access_token": "new-access", "refresh_token": "new-refresh", "expires_in": 3599},
        )
        self.refresh = (200, {"access_token": "refreshed-access", "expires_in": 3599})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.requests.append(form)
        if request.url.path == "/revoke":
            return httpx.Response(200)
        status, payload = self.refresh if form.get("grant_type") == "refresh_token" else self.exchange
        if isinstance(payload, str):
            return httpx.Response(status, text=payload)
        return httpx.Response(status, json=payload)

    def grants(self) -> list[str]:
        return [r.get("grant_type", "revoke") for r in self.requests]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return CredentialStore(storage)


@pytest.fixture
def config():
    return SchedulerConfig(client_id="test-client-id", client_secret="test-client-secret")


@pytest.fixture
def token_endpoint():
    return TokenEndpoint()


@pytest.fixture
def authorizer():
    return FakeAuthorizer()


@pytest.fixture
def manager(store, authorizer, config, token_endpoint, clock, tmp_path):
    """CredentialManager wired to in-memory storage and a fake token endpoint."""
    return CredentialManager(
        store=store,
        authorizer=authorizer,
        config_loader=lambda: config,
        transport=httpx.MockTransport(token_endpoint),
        credentials_path=tmp_path / "credentials.json",
        clock=clock,
    )


def write_client_file(path, client_id="file-client-id.apps.googleusercontent.com", key="installed"):
    creds = {
        key: {
            "client_id": client_id,
            "client_secret": "file-secret",
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }
    with open(path, "w") as f:
        json.dump(creds, f)
    return path
