# vault_access/models/api/share_response.py
"""
API response models for share links and legacy access redemption.
Stored records are never returned as-is: password hashes and grant tokens stay server-side.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from vault_access.models.domain.share_domain import ShareLink


class CreateShareResponse(BaseModel):
    share_id: str = Field(..., description="Share link id (bearer credential)")
    share_url: str = Field(..., description="Public URL to hand out")


class ShareLinkSummary(BaseModel):
    """Owner-facing view of a link."""

    id: str
    collection_id: str
    access_level: Literal["view", "download"]
    password_protected: bool
    expires_at: datetime | None = None
    created_at: datetime
    revoked_at: datetime | None = None
    view_count: int = 0
    last_accessed_at: datetime | None = None

    @classmethod
    def from_link(cls, link: ShareLink) -> "ShareLinkSummary":
        return cls(
            id=link.id,
            collection_id=link.collection_id,
            access_level=link.access_level,
            password_protected=link.password_protected,
            expires_at=link.expires_at,
            created_at=link.created_at,
            revoked_at=link.revoked_at,
            view_count=link.view_count,
            last_accessed_at=link.last_accessed_at,
        )


class ShareAccessResponse(BaseModel):
    """Viewer-facing result of a successful redemption."""

    valid: bool = True
    collection_id: str
    access_level: Literal["view", "download"]
    expires_at: datetime | None = None
    view_count: int


class PermissionResponse(BaseModel):
    allowed: bool
    error: str | None = None
    message: str | None = None


class RevokeShareResponse(BaseModel):
    success: bool
    share_id: str


class LegacyAccessResponse(BaseModel):
    valid: bool = True
    account_id: str
    beneficiary_email: str
    granted_at: datetime
    expires_at: datetime
