"""
Email retry queue processing.

Drains `email_queue:` entries written by `enqueue_email`: due entries are sent
again, successes are marked `sent`, failures back off exponentially
(2^attempts * 5 minutes) and give up as `failed` after `max_attempts`.
A delivered beneficiary grant email is recorded on its grant.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta

from pydantic import ValidationError

from vault_access.config import settings
from vault_access.infrastructure.observability.logging import get_logger
from vault_access.models.domain.common import utc_now
from vault_access.models.domain.notification_domain import QueuedEmail
from vault_access.services.legacy_grant_manager import LegacyAccessGrantManager
from vault_access.services.notifier import Notifier
from vault_access.storage import keys
from vault_access.storage.kv_store import KeyValueStore, get_by_prefix

logger = get_logger(__name__)

BACKOFF_BASE_MINUTES = 5


def backoff_for(attempts: int) -> timedelta:
    return timedelta(minutes=(2**attempts) * BACKOFF_BASE_MINUTES)


class EmailQueueService:
    """Retries queued notifications through a notifier."""

    def __init__(
        self,
        store: KeyValueStore,
        notifier: Notifier,
        grant_manager: LegacyAccessGrantManager | None = None,
        clock: Callable[[], datetime] = utc_now,
        send_delay: float | None = None,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.grant_manager = grant_manager or LegacyAccessGrantManager(
            store, notifier, clock=clock
        )
        self.send_delay = (
            settings.notification_send_delay_seconds() if send_delay is None else send_delay
        )

    async def process_queue(self) -> dict:
        """
        Process every due queue entry once.

        Returns:
            dict: {"processed": int, "sent": int, "failed": int, "errors": int}
        """
        now = self.clock()
        stats = {"processed": 0, "sent": 0, "failed": 0, "errors": 0}

        for key, value in await get_by_prefix(self.store, keys.EMAIL_QUEUE_PREFIX):
            try:
                entry = QueuedEmail.model_validate(value)
            except ValidationError as e:
                stats["errors"] += 1
                logger.error("Malformed email queue entry", queue_key=key, error=str(e))
                continue

            if entry.status != "pending" or entry.next_retry > now:
                continue

            if entry.attempts >= entry.max_attempts:
                entry.status = "failed"
                await self.store.set(key, entry.to_record())
                stats["failed"] += 1
                logger.warning("Queued email gave up", email_id=entry.id, attempts=entry.attempts)
                continue

            if stats["processed"] and self.send_delay:
                await asyncio.sleep(self.send_delay)  # mail transport rate limit

            stats["processed"] += 1
            await self._retry(key, entry)
            if entry.status == "sent":
                stats["sent"] += 1

        logger.info("Email queue processed", **stats)
        return stats

    async def _retry(self, key: str, entry: QueuedEmail) -> None:
        now = self.clock()
        try:
            result = await self.notifier.send(
                entry.recipient_email, entry.subject, entry.template, entry.variables
            )
            success, error = result.success, result.error
        except Exception as e:
            success, error = False, str(e)

        if success:
            entry.status = "sent"
            entry.sent_at = now
            logger.info("Queued email sent", email_id=entry.id)
        else:
            entry.attempts += 1
            entry.last_attempt_at = now
            entry.next_retry = now + backoff_for(entry.attempts)
            entry.error_message = error
            logger.warning(
                "Email retry failed",
                email_id=entry.id,
                attempt=entry.attempts,
                max_attempts=entry.max_attempts,
            )

        await self.store.set(key, entry.to_record())

        if success and entry.grant_token:
            await self.grant_manager.record_delivery(entry.grant_token, now)
