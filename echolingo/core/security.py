"""Session token and credential helpers.

Passwords are stored and compared in plain form; this is a single-household
study tool, not an identity provider.
"""
from __future__ import annotations

import re
import secrets

TOKEN_BYTES = 24
ACCOUNT_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{3,32}$")
MIN_PASSWORD_LENGTH = 4


def create_session_token() -> str:
    """Return an opaque bearer token (48 hex characters)."""

    return secrets.token_hex(TOKEN_BYTES)


def verify_password(plain_password: str, stored_password: str) -> bool:
    """Compare a submitted password with the stored one in constant time."""

    return secrets.compare_digest(plain_password.encode("utf-8"), stored_password.encode("utf-8"))


def is_valid_account(account: str) -> bool:
    return bool(ACCOUNT_PATTERN.fullmatch(account or ""))


def is_valid_password(password: str) -> bool:
    return len(password or "") >= MIN_PASSWORD_LENGTH
