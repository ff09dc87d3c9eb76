"""
AuditLogger - Audit trail for delegated access decisions.

Records who minted, redeemed or revoked a capability token and when an account
crossed into legacy access, so every grant can be traced after the fact.

Usage:
    audit = AuditLogger(store)

    await audit.log(
        actor_id=owner_id,
        action="share_link_created",
        resource_type="share_link",
        resource_id=share_id,
        metadata={"collection_id": collection_id, "access_level": "view"},
    )

Design Principles:
- Write to both the key-value store (queryable) and structured logs (searchable)
- Never fail the caller if audit logging fails
- Bearer tokens are recorded as short previews only
"""

from typing import Any
from uuid import uuid4

from vault_access.infrastructure.observability.logging import get_logger
from vault_access.models.domain.common import utc_now
from vault_access.storage import keys
from vault_access.storage.kv_store import KeyValueStore

logger = get_logger(__name__)


class AuditLogger:
    """
    Centralized audit logging service.

    Logs every access-affecting operation to:
    1. Key-value store (`audit_log:<timestamp>:<id>`) - durable trail
    2. Structured logs (stdout) - real-time monitoring
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def log(
        self,
        actor_id: str | None,
        action: str,
        resource_type: str | None = None,
        resource_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """
        Log an audit event to the store and structured logs.

        Args:
            actor_id: Owner, account or "system" for scheduled passes
            action: Action name (e.g., "share_link_revoked", "legacy_access_granted")
            resource_type: Type of resource (e.g., "share_link", "legacy_access_grant")
            resource_id: Resource identifier (previewed by the caller if it is a credential)
            metadata: Additional JSON-serializable context

        Returns:
            True if persisted, False if the store write failed (never raises)
        """
        now = utc_now()
        event_id = str(uuid4())

        logger.info(
            "Audit event",
            audit_action=action,
            actor_id=actor_id,
            resource_type=resource_type,
            resource_id=resource_id,
        )

        record = {
            "id": event_id,
            "actor_id": actor_id,
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "metadata": metadata or {},
            "created_at": now.isoformat(),
        }

        try:
            await self.store.set(keys.audit_log_key(now.isoformat(), event_id), record)
            return True
        except Exception as e:
            # Never fail the operation because of the audit trail
            logger.error(
                "CRITICAL: Failed to write audit log to store",
                error=str(e),
                error_type=type(e).__name__,
                fallback_data=record,
            )
            return False
