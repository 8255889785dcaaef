"""PKCE (RFC 7636) verifier and challenge generation."""

from __future__ import annotations

import string
from dataclasses import dataclass

from authlib.common.security import generate_token
from authlib.oauth2.rfc7636 import create_s256_code_challenge

# RFC 3986 unreserved characters
VERIFIER_CHARSET = string.ascii_letters + string.digits + "-._~"
DEFAULT_VERIFIER_LENGTH = 64
CHALLENGE_METHOD = "S256"


@dataclass(frozen=True)
class PkceChallenge:
    """A code verifier and its S256 challenge."""

    verifier: str
    challenge: str
    method: str = CHALLENGE_METHOD

    @classmethod
    def generate(cls, length: int = DEFAULT_VERIFIER_LENGTH) -> PkceChallenge:
        """Create a fresh verifier/challenge pair.

        Args:
            length: Verifier length. RFC 7636 allows 43 to 128 characters.

        Returns:
            New PkceChallenge.
        """
        if not 43 <= length <= 128:
            raise ValueError(f"PKCE verifier length must be between 43 and 128, got {length}")

        verifier = generate_token(length, chars=VERIFIER_CHARSET)
        return cls.from_verifier(verifier)

    @classmethod
    def from_verifier(cls, verifier: str) -> PkceChallenge:
        """Derive the challenge as base64url(SHA-256(verifier)) without padding."""
        return cls(verifier=verifier, challenge=create_s256_code_challenge(verifier))
