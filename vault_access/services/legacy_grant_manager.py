"""
Legacy Access Grant Manager.

Performs the active -> inactive transition for an account that crossed its
inactivity threshold and issues one access grant per beneficiary. The whole
issuance is guarded by the per-account processed marker, which belongs to one
inactivity episode (identified by the last activity it was measured from).
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from pydantic import ValidationError

from vault_access.config import settings
from vault_access.infrastructure.audit import AuditLogger
from vault_access.infrastructure.observability.logging import get_logger, preview
from vault_access.models.domain.account_domain import Account, Beneficiary
from vault_access.models.domain.common import utc_now
from vault_access.models.domain.errors import AccessError
from vault_access.models.domain.grant_domain import (
    GrantMarker,
    GrantValidationResult,
    LegacyAccessGrant,
)
from vault_access.security.tokens import mint_token
from vault_access.services.account_service import AccountService
from vault_access.services.notifier import Notifier, deliver_or_queue
from vault_access.storage import keys
from vault_access.storage.idempotency import ensure_once
from vault_access.storage.kv_store import KeyValueStore

logger = get_logger(__name__)

GRANT_TEMPLATE = "beneficiary-access-granted"


@dataclass(slots=True)
class GrantIssueSummary:
    """What one call to `process_inactive_account` did."""

    already_processed: bool = False
    marked_inactive: bool = False
    grants_issued: int = 0
    notifications_sent: int = 0
    notifications_queued: int = 0


class LegacyAccessGrantManager:
    def __init__(
        self,
        store: KeyValueStore,
        notifier: Notifier,
        accounts: AccountService | None = None,
        audit: AuditLogger | None = None,
        clock: Callable[[], datetime] = utc_now,
        send_delay: float | None = None,
        grant_valid_days: int | None = None,
    ):
        self.store = store
        self.notifier = notifier
        self.accounts = accounts or AccountService(store, clock=clock)
        self.audit = audit or AuditLogger(store)
        self.clock = clock
        self.send_delay = (
            settings.notification_send_delay_seconds() if send_delay is None else send_delay
        )
        self.grant_valid_for = timedelta(
            days=grant_valid_days or settings.LEGACY_GRANT_VALID_DAYS
        )

    async def process_inactive_account(
        self, account: Account, days_since_activity: int
    ) -> GrantIssueSummary:
        """
        Deactivate the account and grant access to its beneficiaries, once per episode.

        Order matters for crash safety: status flips first, every grant record is
        written before its notification is attempted, and the processed marker
        is written last.
        """
        summary = GrantIssueSummary()
        episode_started_at = account.activity_reference

        async def issue_grants() -> dict:
            now = self.clock()
            await self._mark_inactive(account, now)
            summary.marked_inactive = True

            beneficiaries = await self.accounts.list_beneficiaries(account.id)
            if not beneficiaries:
                logger.info("No beneficiaries for inactive account", account_id=account.id)

            for index, beneficiary in enumerate(beneficiaries):
                if index and self.send_delay:
                    await asyncio.sleep(self.send_delay)  # mail transport rate limit
                sent = await self._issue_grant(account, beneficiary, now, days_since_activity)
                summary.grants_issued += 1
                if sent:
                    summary.notifications_sent += 1
                else:
                    summary.notifications_queued += 1

            return GrantMarker(
                account_id=account.id,
                processed_at=now,
                beneficiary_count=len(beneficiaries),
                episode_started_at=episode_started_at,
            ).to_record()

        outcome = await ensure_once(
            self.store,
            keys.grant_marker_key(account.id),
            issue_grants,
            is_current=lambda marker: _marker_matches_episode(marker, episode_started_at),
        )

        if outcome.already_processed:
            logger.info("Access already granted for account", account_id=account.id)
            summary.already_processed = True
            return summary

        await self.audit.log(
            actor_id="system",
            action="legacy_access_granted",
            resource_type="account",
            resource_id=account.id,
            metadata={
                "grants_issued": summary.grants_issued,
                "notifications_queued": summary.notifications_queued,
                "days_since_activity": days_since_activity,
            },
        )
        return summary

    async def validate_access_grant(self, token: str) -> GrantValidationResult:
        """Redeem a beneficiary access token from the grant email."""
        record = await self.store.get(keys.grant_token_key(token)) if token else None
        if record is None:
            return GrantValidationResult(valid=False, error=AccessError.NOT_FOUND)

        grant = LegacyAccessGrant.model_validate(record)
        now = self.clock()
        if grant.is_expired(now):
            return GrantValidationResult(valid=False, error=AccessError.EXPIRED)

        if grant.first_used_at is None:
            grant.first_used_at = now
            await self._save_grant_update(grant)
            await self.audit.log(
                actor_id=grant.beneficiary_email,
                action="legacy_access_redeemed",
                resource_type="legacy_access_grant",
                resource_id=grant.account_id,
            )

        return GrantValidationResult(valid=True, grant=grant)

    async def record_delivery(self, token: str, sent_at: datetime) -> bool:
        """
        Mark a grant as emailed once its queued notification finally went out.

        Returns:
            True if the grant was updated, False if it is unknown or already marked.
        """
        record = await self.store.get(keys.grant_token_key(token))
        if record is None:
            logger.warning(
                "Delivered email refers to unknown grant", token_preview=preview(token, 8)
            )
            return False

        grant = LegacyAccessGrant.model_validate(record)
        if grant.email_sent:
            return False

        await self._mark_sent(grant, sent_at)
        logger.info(
            "Queued grant email delivered",
            account_id=grant.account_id,
            token_preview=preview(token, 8),
        )
        return True

    # =======================================================================
    # PRIVATE METHODS
    # =======================================================================

    async def _mark_inactive(self, account: Account, now: datetime) -> None:
        account.account_status = "inactive"
        account.inactive_at = now
        await self.accounts.save_account(account)
        logger.warning("Account marked inactive", account_id=account.id)

    async def _issue_grant(
        self,
        account: Account,
        beneficiary: Beneficiary,
        now: datetime,
        days_since_activity: int,
    ) -> bool:
        """Persist one grant, then try to notify. Returns True if the email went out."""
        token = mint_token()
        grant = LegacyAccessGrant(
            account_id=account.id,
            beneficiary_email=beneficiary.email,
            access_token=token,
            granted_at=now,
            expires_at=now + self.grant_valid_for,
        )

        # Grant exists regardless of delivery; only email_sent differs
        await self.store.set(keys.grant_key(account.id, beneficiary.email), grant.to_record())
        await self.store.set(keys.grant_token_key(token), grant.to_record())

        outcome = await deliver_or_queue(
            self.notifier,
            to=beneficiary.email,
            subject=(
                f"Legacy Access Granted: {account.display_name}'s memories "
                "are now available to you"
            ),
            template=GRANT_TEMPLATE,
            variables={
                "beneficiaryEmail": beneficiary.email,
                "beneficiaryName": beneficiary.name,
                "userName": account.display_name,
                "userEmail": account.email,
                "inactivityDays": days_since_activity,
                "legacyMessage": account.legacy_message,
                "accessUrl": settings.legacy_access_url(token),
                "inactiveDate": now.date().isoformat(),
                "expiresAt": grant.expires_at.isoformat(),
                "appUrl": settings.app_base_url(),
            },
            grant_token=token,
        )

        if outcome.sent:
            await self._mark_sent(grant, now)

        logger.info(
            "Legacy access grant issued",
            account_id=account.id,
            token_preview=preview(token, 8),
            email_sent=outcome.sent,
        )
        return outcome.sent

    async def _mark_sent(self, grant: LegacyAccessGrant, sent_at: datetime) -> None:
        grant.email_sent = True
        grant.email_sent_at = sent_at
        await self._save_grant_update(grant)

    async def _save_grant_update(self, grant: LegacyAccessGrant) -> None:
        """Update a grant; the per-beneficiary record is only touched if it still
        holds this token (a later episode may have replaced it)."""
        await self.store.set(keys.grant_token_key(grant.access_token), grant.to_record())

        beneficiary_key = keys.grant_key(grant.account_id, grant.beneficiary_email)
        current = await self.store.get(beneficiary_key)
        if current is None or current.get("access_token") == grant.access_token:
            await self.store.set(beneficiary_key, grant.to_record())


def _marker_matches_episode(marker: dict, episode_started_at: datetime) -> bool:
    """A marker written before the account's latest activity belongs to an old episode."""
    try:
        parsed = GrantMarker.model_validate(marker)
    except ValidationError:
        logger.error("Malformed grant marker, treating as processed", marker=marker)
        return True
    if parsed.episode_started_at is None:
        return True
    return parsed.episode_started_at == episode_started_at
