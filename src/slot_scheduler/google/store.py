"""Durable storage for the OAuth credential.

The credential is kept under a single key in a private key-value
namespace. The default backend is a JSON file written atomically, so
concurrent runs that refresh the token resolve as last writer wins.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from slot_scheduler.config import GOOGLE_TOKEN

logger = logging.getLogger(__name__)

TOKEN_KEY = "google_tokens"
EXPIRY_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class Credential:
    """An OAuth bearer credential.

    Attributes:
        access_token: Bearer token presented on API calls.
        refresh_token: Long-lived token for obtaining new access tokens.
        expires_at: Unix timestamp after which ``access_token`` is invalid.
    """

    access_token: str
    expires_at: float
    refresh_token: str | None = None

    def is_valid(self, now: float, margin: float = EXPIRY_MARGIN_SECONDS) -> bool:
        """Check the access token is present and outside the expiry margin."""
        return bool(self.access_token) and now < self.expires_at - margin

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Credential | None:
        """Parse a stored credential, returning None if it is incomplete."""
        access_token = data.get("access_token")
        expires_at = data.get("expires_at")
        if not access_token or expires_at is None:
            return None
        try:
            expires_at = float(expires_at)
        except (TypeError, ValueError):
            return None
        return cls(
            access_token=access_token,
            refresh_token=data.get("refresh_token") or None,
            expires_at=expires_at,
        )


class KeyValueStorage(ABC):
    """Private key-value namespace used for credential persistence."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the stored value, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key. Missing keys are ignored."""


class MemoryStorage(KeyValueStorage):
    """In-process storage, useful for tests and one-shot runs."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """Key-value storage backed by a single JSON object on disk.

    Writes go to a temporary file in the same directory and are moved
    into place with ``os.replace``, so readers never see a partial file.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else GOOGLE_TOKEN

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Any | None:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class CredentialStore:
    """Load, save and clear the stored Credential.

    Example:
        >>> store = CredentialStore(JsonFileStorage("token.json"))
        >>> store.save(Credential("ya29...", expires_at=1767225600.0))
        >>> store.load().access_token
        'ya29...'
    """

    def __init__(self, storage: KeyValueStorage | None = None, key: str = TOKEN_KEY):
        self.storage = storage if storage is not None else JsonFileStorage()
        self.key = key

    def load(self) -> Credential | None:
        data = self.storage.get(self.key)
        if not data:
            logger.info("No existing token found")
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed stored token")
            return None
        return Credential.from_dict(data)

    def save(self, credential: Credential) -> None:
        self.storage.set(self.key, credential.to_dict())
        logger.info("Token saved")

    def clear(self) -> None:
        self.storage.remove(self.key)
        logger.info("Stored token cleared")
