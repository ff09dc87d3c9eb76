# vault_access/models/api/share_request.py
from typing import Literal

from pydantic import BaseModel, Field


class CreateShareRequest(BaseModel):
    """Request body for creating a share link."""

    collection_id: str = Field(..., min_length=1, max_length=200)
    access_level: Literal["view", "download"] = "view"
    expires_in_seconds: int | None = Field(
        default=None, gt=0, description="Link lifetime; omit for a link that never expires"
    )
    password: str | None = Field(default=None, min_length=1, max_length=72)
    created_from: Literal["web", "mobile", "api"] = "web"


class AccessShareRequest(BaseModel):
    """Request body for redeeming a share link."""

    password: str | None = None
