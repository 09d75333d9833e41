"""Guest session token generation and shape checks."""

import re
import secrets

# 32 random bytes -> 43 url-safe base64 characters, no padding.
TOKEN_BYTES = 32
TOKEN_LENGTH = 43

_TOKEN_PATTERN = re.compile(rf"[A-Za-z0-9_-]{{{TOKEN_LENGTH}}}")


def generate_guest_token() -> str:
    """Return a fresh, unguessable guest session token.

    Uses the OS CSPRNG; if it is unavailable the error propagates.
    """
    return secrets.token_urlsafe(TOKEN_BYTES)


def is_well_formed_token(token: str) -> bool:
    """Check that a token has the shape produced by generate_guest_token."""
    return _TOKEN_PATTERN.fullmatch(token) is not None


def token_hint(token: str) -> str:
    """Short, non-secret prefix of a token for log lines."""
    return f"{token[:8]}..."
