"""
Legacy access redemption and the account activity hook.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from vault_access.auth.verify import current_user_id
from vault_access.dependencies import get_account_service, get_grant_manager
from vault_access.models.api.share_response import LegacyAccessResponse
from vault_access.models.domain.errors import AccessError
from vault_access.routes.errors import access_error_exception
from vault_access.services.account_service import AccountService
from vault_access.services.legacy_grant_manager import LegacyAccessGrantManager

router = APIRouter(tags=["Legacy Access"])

GRANT_ERROR_MESSAGES = {
    AccessError.NOT_FOUND: "Invalid access token",
    AccessError.EXPIRED: "Access grant has expired",
}


@router.get("/legacy-access/{token}", response_model=LegacyAccessResponse)
async def redeem_legacy_access(
    token: str,
    grant_manager: LegacyAccessGrantManager = Depends(get_grant_manager),
):
    """Redeem the access token a beneficiary received by email."""
    result = await grant_manager.validate_access_grant(token)
    if not result.valid:
        raise access_error_exception(result.error, GRANT_ERROR_MESSAGES.get(result.error))

    grant = result.grant
    return LegacyAccessResponse(
        account_id=grant.account_id,
        beneficiary_email=grant.beneficiary_email,
        granted_at=grant.granted_at,
        expires_at=grant.expires_at,
    )


@router.post("/account/activity")
async def record_account_activity(
    user_id: str = Depends(current_user_id),
    accounts: AccountService = Depends(get_account_service),
):
    """Login hook: resets the inactivity clock and reactivates inactive accounts."""
    account = await accounts.record_login(user_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")

    return {
        "account_id": account.id,
        "account_status": account.account_status,
        "last_activity_at": account.last_activity_at,
        "reactivated_at": account.reactivated_at,
    }
