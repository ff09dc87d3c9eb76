"""
Capability token minting.

Every bearer credential this service hands out (share link ids, legacy access
tokens) comes from here, so the entropy source can be audited in one place.
"""

import secrets

TOKEN_BYTES = 32  # 256 bits
SHARE_ID_PREFIX = "share_"

__all__ = ["TOKEN_BYTES", "SHARE_ID_PREFIX", "mint_token", "mint_share_id", "is_share_id"]


def mint_token() -> str:
    """Return 32 CSPRNG bytes as 64 lowercase hex characters."""
    return secrets.token_hex(TOKEN_BYTES)


def mint_share_id() -> str:
    """Return a fresh share link id (`share_<token>`)."""
    return f"{SHARE_ID_PREFIX}{mint_token()}"


def is_share_id(value: str | None) -> bool:
    """Cheap shape check used before touching the store."""
    if not value or not value.startswith(SHARE_ID_PREFIX):
        return False
    token = value[len(SHARE_ID_PREFIX) :]
    return len(token) == TOKEN_BYTES * 2 and all(c in "0123456789abcdef" for c in token)
