from datetime import timedelta
from typing import Literal

from pydantic import BaseModel

from vault_access.models.domain.common import UtcDatetime
from vault_access.models.domain.errors import AccessError

AccessLevel = Literal["view", "download"]

# download implies view
ACCESS_LEVEL_RANK: dict[str, int] = {"view": 1, "download": 2}


def level_allows(granted: AccessLevel, requested: AccessLevel) -> bool:
    return ACCESS_LEVEL_RANK[granted] >= ACCESS_LEVEL_RANK[requested]


class ShareLink(BaseModel):
    """Stored share link record. `id` is the bearer credential."""

    id: str
    collection_id: str
    owner_id: str
    access_level: AccessLevel
    password_hash: str | None = None
    expires_at: UtcDatetime | None = None
    created_at: UtcDatetime
    revoked_at: UtcDatetime | None = None
    view_count: int = 0
    last_accessed_at: UtcDatetime | None = None
    created_from: Literal["web", "mobile", "api"] = "web"

    @property
    def password_protected(self) -> bool:
        return self.password_hash is not None

    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: UtcDatetime) -> bool:
        """Expired from `expires_at` onward, whether or not the sweep has run."""
        return self.expires_at is not None and now >= self.expires_at

    def invalid_reason(self, now: UtcDatetime) -> AccessError | None:
        """Revocation and expiry checks shared by validation and permission probes."""
        if self.is_revoked():
            return AccessError.REVOKED
        if self.is_expired(now):
            return AccessError.EXPIRED
        return None

    def to_record(self) -> dict:
        return self.model_dump(mode="json")


class CreateShareOptions(BaseModel):
    access_level: AccessLevel = "view"
    expires_in: timedelta | None = None
    password: str | None = None
    created_from: Literal["web", "mobile", "api"] = "web"


class CreatedShareLink(BaseModel):
    share_id: str
    share_url: str


class ShareValidationResult(BaseModel):
    valid: bool
    link: ShareLink | None = None
    error: AccessError | None = None


class PermissionResult(BaseModel):
    allowed: bool
    error: AccessError | None = None


class RevokeResult(BaseModel):
    success: bool
    error: AccessError | None = None


class ShareStats(BaseModel):
    total_shares: int = 0
    active_shares: int = 0
    total_views: int = 0
    expiring_this_week: int = 0
