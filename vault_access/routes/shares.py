"""
Share Link API Router.

Owner endpoints (bearer token required):
- POST /shares, GET /shares, GET /shares/stats
- GET /collections/{collection_id}/shares
- DELETE /shares/{share_id}

Public endpoints (the share id is the credential):
- POST /s/{share_id}/access
- GET /s/{share_id}/permissions
"""

from datetime import timedelta
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status

from vault_access.auth.verify import current_user_id
from vault_access.dependencies import get_share_link_service
from vault_access.infrastructure.observability.logging import get_logger
from vault_access.models.api.share_request import AccessShareRequest, CreateShareRequest
from vault_access.models.api.share_response import (
    CreateShareResponse,
    PermissionResponse,
    RevokeShareResponse,
    ShareAccessResponse,
    ShareLinkSummary,
)
from vault_access.models.domain.share_domain import CreateShareOptions, ShareStats
from vault_access.routes.errors import access_error_exception
from vault_access.security.hashing import HashingError
from vault_access.services.share_link_service import ShareLinkService

logger = get_logger(__name__)

router = APIRouter(tags=["Share Links"])


@router.post("/shares", response_model=CreateShareResponse, status_code=201)
async def create_share(
    body: CreateShareRequest,
    user_id: str = Depends(current_user_id),
    service: ShareLinkService = Depends(get_share_link_service),
):
    """Create a share link for one of the caller's collections."""
    options = CreateShareOptions(
        access_level=body.access_level,
        expires_in=(
            timedelta(seconds=body.expires_in_seconds) if body.expires_in_seconds else None
        ),
        password=body.password,
        created_from=body.created_from,
    )
    try:
        created = await service.create_share_link(user_id, body.collection_id, options)
    except HashingError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    return CreateShareResponse(share_id=created.share_id, share_url=created.share_url)


@router.get("/shares", response_model=list[ShareLinkSummary])
async def list_my_shares(
    user_id: str = Depends(current_user_id),
    service: ShareLinkService = Depends(get_share_link_service),
):
    links = await service.list_owner_shares(user_id)
    return [ShareLinkSummary.from_link(link) for link in links]


@router.get("/shares/stats", response_model=ShareStats)
async def share_stats(
    user_id: str = Depends(current_user_id),
    service: ShareLinkService = Depends(get_share_link_service),
):
    return await service.get_share_stats(user_id)


@router.get("/collections/{collection_id}/shares", response_model=list[ShareLinkSummary])
async def list_collection_shares(
    collection_id: str,
    user_id: str = Depends(current_user_id),
    service: ShareLinkService = Depends(get_share_link_service),
):
    links = await service.list_collection_shares(user_id, collection_id)
    return [ShareLinkSummary.from_link(link) for link in links]


@router.delete("/shares/{share_id}", response_model=RevokeShareResponse)
async def revoke_share(
    share_id: str,
    user_id: str = Depends(current_user_id),
    service: ShareLinkService = Depends(get_share_link_service),
):
    """Revoke a link. Revoking an already revoked link answers 409."""
    result = await service.revoke_share_link(user_id, share_id)
    if not result.success:
        raise access_error_exception(result.error)
    return RevokeShareResponse(success=True, share_id=share_id)


@router.post("/s/{share_id}/access", response_model=ShareAccessResponse)
async def access_share(
    share_id: str,
    body: AccessShareRequest | None = None,
    service: ShareLinkService = Depends(get_share_link_service),
):
    """Redeem a share link; the only way a viewer reaches a shared collection."""
    result = await service.validate_share_link(share_id, body.password if body else None)
    if not result.valid:
        raise access_error_exception(result.error)

    link = result.link
    return ShareAccessResponse(
        collection_id=link.collection_id,
        access_level=link.access_level,
        expires_at=link.expires_at,
        view_count=link.view_count,
    )


@router.get("/s/{share_id}/permissions", response_model=PermissionResponse)
async def share_permissions(
    share_id: str,
    action: Literal["view", "download"] = Query(default="view"),
    service: ShareLinkService = Depends(get_share_link_service),
):
    """Read-only probe of whether an action is allowed on a link."""
    result = await service.check_share_permission(share_id, action)
    if result.allowed:
        return PermissionResponse(allowed=True)
    return PermissionResponse(allowed=False, error=result.error.value, message=result.error.message)
