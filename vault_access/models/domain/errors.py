from enum import Enum


class AccessError(str, Enum):
    """Reasons an access, permission or lifecycle request did not go through."""

    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    REVOKED = "revoked"
    EXPIRED = "expired"
    PASSWORD_REQUIRED = "password_required"
    INVALID_PASSWORD = "invalid_password"
    PERMISSION_DENIED = "permission_denied"
    ALREADY_REVOKED = "already_revoked"
    # internal signals, never shown to a viewer
    ALREADY_PROCESSED = "already_processed"
    DELIVERY_FAILED = "delivery_failed"

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self]


ERROR_MESSAGES: dict[AccessError, str] = {
    AccessError.NOT_FOUND: "Share link not found",
    AccessError.UNAUTHORIZED: "Unauthorized",
    AccessError.REVOKED: "Share link has been revoked",
    AccessError.EXPIRED: "Share link has expired",
    AccessError.PASSWORD_REQUIRED: "Password required",
    AccessError.INVALID_PASSWORD: "Invalid password",
    AccessError.PERMISSION_DENIED: "Download not permitted (view-only link)",
    AccessError.ALREADY_REVOKED: "Share link already revoked",
    AccessError.ALREADY_PROCESSED: "Already processed",
    AccessError.DELIVERY_FAILED: "Notification delivery failed",
}
