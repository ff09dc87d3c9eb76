"""
One-way password hashing for password-protected share links.

Only the bcrypt hash is ever stored; verification re-hashes the candidate with
the stored salt and compares inside bcrypt.
"""

from __future__ import annotations

import bcrypt

from vault_access.config import settings

BCRYPT_MAX_PASSWORD_BYTES = 72  # bcrypt ignores/rejects anything longer

__all__ = ["HashingError", "hash_password", "verify_password"]


class HashingError(RuntimeError):
    """Raised when a password cannot be hashed."""


def _password_bytes(password: str) -> bytes:
    return (password or "").encode("utf-8")


def hash_password(password: str) -> str:
    """
    Hash a share link password with bcrypt.

    Args:
        password: Plaintext password supplied by the link owner.

    Raises:
        HashingError: If the password is empty or longer than bcrypt accepts.
    """
    password_bytes = _password_bytes(password)
    if not password_bytes:
        raise HashingError("Password must be a non-empty string")
    if len(password_bytes) > BCRYPT_MAX_PASSWORD_BYTES:
        raise HashingError(f"Password exceeds {BCRYPT_MAX_PASSWORD_BYTES} bytes")

    salt = bcrypt.gensalt(rounds=settings.SHARE_PASSWORD_BCRYPT_ROUNDS)
    return bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(password: str | None, password_hash: str) -> bool:
    """Check a candidate password against a stored bcrypt hash."""
    password_bytes = _password_bytes(password)
    if not password_bytes or len(password_bytes) > BCRYPT_MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(password_bytes, password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False
