"""
Owner authentication for the share management and account routes.

Owners arrive with a Supabase session token. Signing keys come from the
project's JWKS endpoint (cached by PyJWKClient); the `sub` claim is the
account id every owner-scoped operation runs as. Public share and legacy
access routes never touch this module: their path token is the credential.
"""

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from vault_access.config import settings
from vault_access.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

OWNER_TOKEN_AUDIENCE = "authenticated"
OWNER_TOKEN_ALGORITHMS = ["ES256"]

_jwk_client = PyJWKClient(settings.jwks_url())
_bearer = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    """Decode an owner session token, raising 401 on any signature, audience or expiry problem."""
    try:
        signing_key = _jwk_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=OWNER_TOKEN_ALGORITHMS,
            audience=OWNER_TOKEN_AUDIENCE,
            options={"verify_exp": True, "require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as e:
        logger.warning("Owner token rejected", error_type=type(e).__name__)
        raise _unauthorized(f"Invalid authentication token: {e}") from e


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_bearer)) -> dict:
    return verify_jwt(credentials.credentials)


def current_user_id(claims: dict = Depends(auth_dependency)) -> str:
    """Account id of the authenticated owner."""
    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized("User ID not found in claims")
    return user_id
