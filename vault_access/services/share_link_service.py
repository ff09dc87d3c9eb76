"""
Share Link Service for capability-token access to collections.

A share link id is itself the bearer credential: whoever holds
`<APP_URL>/s/<share_id>` can redeem it, subject to revocation, expiry,
an optional password and the link's access level.
"""

from collections.abc import Callable
from datetime import datetime, timedelta

from pydantic import ValidationError

from vault_access.config import settings
from vault_access.infrastructure.audit import AuditLogger
from vault_access.infrastructure.observability.logging import get_logger, preview
from vault_access.models.domain.common import utc_now
from vault_access.models.domain.errors import AccessError
from vault_access.models.domain.share_domain import (
    AccessLevel,
    CreatedShareLink,
    CreateShareOptions,
    PermissionResult,
    RevokeResult,
    ShareLink,
    ShareStats,
    ShareValidationResult,
    level_allows,
)
from vault_access.security.hashing import hash_password, verify_password
from vault_access.security.tokens import is_share_id, mint_share_id
from vault_access.storage import keys
from vault_access.storage.kv_store import KeyValueStore, get_by_prefix

logger = get_logger(__name__)

EXPIRING_SOON_WINDOW = timedelta(days=7)


class ShareLinkService:
    """
    Owns the share link lifecycle: create, validate, probe, revoke, sweep.

    Validity is always computed at read time from `revoked_at` and
    `expires_at`; the periodic sweep only makes expiry visible in the record.
    """

    def __init__(
        self,
        store: KeyValueStore,
        audit: AuditLogger | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.audit = audit or AuditLogger(store)
        self.clock = clock

    # =======================================================================
    # LIFECYCLE
    # =======================================================================

    async def create_share_link(
        self, owner_id: str, collection_id: str, options: CreateShareOptions
    ) -> CreatedShareLink:
        """
        Create a new share link for a collection.

        Args:
            owner_id: Owner of the collection
            collection_id: Collection being shared
            options: Access level, optional lifetime and optional password

        Returns:
            CreatedShareLink: share id and public share URL

        Raises:
            HashingError: If the password cannot be hashed
            StoreError: If the link or its indexes cannot be persisted
        """
        now = self.clock()
        share_id = mint_share_id()

        link = ShareLink(
            id=share_id,
            collection_id=collection_id,
            owner_id=owner_id,
            access_level=options.access_level,
            password_hash=hash_password(options.password) if options.password else None,
            expires_at=now + options.expires_in if options.expires_in else None,
            created_at=now,
            created_from=options.created_from,
        )

        await self.store.set(keys.share_key(share_id), link.to_record())
        await self._append_index(keys.collection_shares_key(collection_id), share_id)
        await self._append_index(keys.owner_shares_key(owner_id), share_id)

        logger.info(
            "Share link created",
            share_id=preview(share_id),
            collection_id=collection_id,
            owner_id=owner_id,
            access_level=link.access_level,
            password_protected=link.password_protected,
            expires_at=link.expires_at.isoformat() if link.expires_at else None,
        )
        await self.audit.log(
            actor_id=owner_id,
            action="share_link_created",
            resource_type="share_link",
            resource_id=preview(share_id),
            metadata={"collection_id": collection_id, "access_level": link.access_level},
        )

        return CreatedShareLink(share_id=share_id, share_url=settings.share_url(share_id))

    async def validate_share_link(
        self, share_id: str, password: str | None = None
    ) -> ShareValidationResult:
        """
        Redeem a share link. This is the only path that grants collection access.

        Checks run in order and stop at the first failure: not found, revoked,
        expired, password required / invalid. A successful redemption bumps
        `view_count` and `last_accessed_at`.
        """
        link = await self._load(share_id)
        if link is None:
            return ShareValidationResult(valid=False, error=AccessError.NOT_FOUND)

        now = self.clock()
        reason = link.invalid_reason(now)
        if reason is not None:
            logger.info("Share link rejected", share_id=preview(share_id), reason=reason.value)
            return ShareValidationResult(valid=False, error=reason)

        if link.password_hash:
            if not password:
                return ShareValidationResult(valid=False, error=AccessError.PASSWORD_REQUIRED)
            if not verify_password(password, link.password_hash):
                logger.warning("Share link password mismatch", share_id=preview(share_id))
                return ShareValidationResult(valid=False, error=AccessError.INVALID_PASSWORD)

        # Read-modify-write; view_count is informational, last writer wins
        link.view_count += 1
        link.last_accessed_at = now
        await self.store.set(keys.share_key(share_id), link.to_record())

        logger.info(
            "Share link accessed", share_id=preview(share_id), view_count=link.view_count
        )
        return ShareValidationResult(valid=True, link=link)

    async def check_share_permission(
        self, share_id: str, requested_action: AccessLevel
    ) -> PermissionResult:
        """Read-only probe: is `requested_action` allowed on this link right now?"""
        link = await self._load(share_id)
        if link is None:
            return PermissionResult(allowed=False, error=AccessError.NOT_FOUND)

        reason = link.invalid_reason(self.clock())
        if reason is not None:
            return PermissionResult(allowed=False, error=reason)

        if not level_allows(link.access_level, requested_action):
            return PermissionResult(allowed=False, error=AccessError.PERMISSION_DENIED)

        return PermissionResult(allowed=True)

    async def revoke_share_link(self, owner_id: str, share_id: str) -> RevokeResult:
        """
        Revoke a link. Owner only; revoking twice reports ALREADY_REVOKED
        instead of pretending to succeed.
        """
        link = await self._load(share_id)
        if link is None:
            return RevokeResult(success=False, error=AccessError.NOT_FOUND)

        if link.owner_id != owner_id:
            logger.warning(
                "Share link revoke by non-owner",
                share_id=preview(share_id),
                requested_by=owner_id,
            )
            return RevokeResult(success=False, error=AccessError.UNAUTHORIZED)

        if link.is_revoked():
            return RevokeResult(success=False, error=AccessError.ALREADY_REVOKED)

        link.revoked_at = self.clock()
        await self.store.set(keys.share_key(share_id), link.to_record())

        logger.info("Share link revoked", share_id=preview(share_id), owner_id=owner_id)
        await self.audit.log(
            actor_id=owner_id,
            action="share_link_revoked",
            resource_type="share_link",
            resource_id=preview(share_id),
        )
        return RevokeResult(success=True)

    async def cleanup_expired_links(self) -> int:
        """
        Mark every expired-but-unrevoked link as revoked.

        Returns:
            int: Number of links revoked by this sweep
        """
        now = self.clock()
        revoked_count = 0

        for key, value in await get_by_prefix(self.store, keys.SHARE_PREFIX):
            try:
                link = ShareLink.model_validate(value)
            except ValidationError as e:
                logger.error("Malformed share link record", share_key=preview(key), error=str(e))
                continue

            if link.is_revoked() or not link.is_expired(now):
                continue

            link.revoked_at = now
            await self.store.set(key, link.to_record())
            revoked_count += 1

        logger.info("Share link cleanup complete", revoked_count=revoked_count)
        return revoked_count

    # =======================================================================
    # LISTING
    # =======================================================================

    async def list_collection_shares(self, owner_id: str, collection_id: str) -> list[ShareLink]:
        """Unrevoked links the owner created for one collection."""
        return await self._load_index(keys.collection_shares_key(collection_id), owner_id)

    async def list_owner_shares(self, owner_id: str) -> list[ShareLink]:
        """Unrevoked links created by an owner, across collections."""
        return await self._load_index(keys.owner_shares_key(owner_id), owner_id)

    async def get_share_stats(self, owner_id: str) -> ShareStats:
        now = self.clock()
        shares = await self.list_owner_shares(owner_id)

        return ShareStats(
            total_shares=len(shares),
            active_shares=sum(1 for s in shares if not s.is_expired(now)),
            total_views=sum(s.view_count for s in shares),
            expiring_this_week=sum(
                1
                for s in shares
                if s.expires_at and now < s.expires_at < now + EXPIRING_SOON_WINDOW
            ),
        )

    # =======================================================================
    # PRIVATE METHODS
    # =======================================================================

    async def _load(self, share_id: str) -> ShareLink | None:
        if not is_share_id(share_id):
            return None
        record = await self.store.get(keys.share_key(share_id))
        if record is None:
            return None
        return ShareLink.model_validate(record)

    async def _append_index(self, index_key: str, share_id: str) -> None:
        share_ids = await self.store.get(index_key) or []
        if share_id not in share_ids:
            await self.store.set(index_key, [*share_ids, share_id])

    async def _load_index(self, index_key: str, owner_id: str) -> list[ShareLink]:
        shares = []
        for share_id in await self.store.get(index_key) or []:
            link = await self._load(share_id)
            if link is None or link.owner_id != owner_id or link.is_revoked():
                continue
            shares.append(link)
        return shares
