from fastapi import HTTPException, status

from vault_access.models.domain.errors import AccessError

ERROR_STATUS: dict[AccessError, int] = {
    AccessError.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AccessError.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    AccessError.REVOKED: status.HTTP_410_GONE,
    AccessError.EXPIRED: status.HTTP_410_GONE,
    AccessError.PASSWORD_REQUIRED: status.HTTP_401_UNAUTHORIZED,
    AccessError.INVALID_PASSWORD: status.HTTP_401_UNAUTHORIZED,
    AccessError.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    AccessError.ALREADY_REVOKED: status.HTTP_409_CONFLICT,
}


def access_error_exception(error: AccessError, message: str | None = None) -> HTTPException:
    """Turn a typed access error into an HTTP error with a specific reason."""
    return HTTPException(
        status_code=ERROR_STATUS.get(error, status.HTTP_400_BAD_REQUEST),
        detail={"error": error.value, "message": message or error.message},
    )
