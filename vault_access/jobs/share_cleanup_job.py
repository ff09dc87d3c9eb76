"""
Share Cleanup Job - marks expired share links as revoked.

Expired links are already rejected at read time; this sweep only keeps the
stored records honest for listings and bookkeeping.
"""

import asyncio
from datetime import UTC, datetime

from vault_access.dependencies import get_share_link_service
from vault_access.infrastructure.observability.logging import get_logger, log_job_run
from vault_access.services.share_link_service import ShareLinkService

logger = get_logger(__name__)

CLEANUP_INTERVAL_HOURS = 24


class ShareCleanupJob:
    def __init__(self, service: ShareLinkService | None = None):
        self._service = service
        self.is_running = False

    @property
    def service(self) -> ShareLinkService:
        if self._service is None:
            self._service = get_share_link_service()
        return self._service

    async def run_cleanup(self) -> dict:
        if self.is_running:
            logger.warning("Share cleanup already running, skipping")
            return {"skipped": True, "reason": "already_running"}

        self.is_running = True
        start_time = datetime.now(UTC)
        try:
            revoked_count = await self.service.cleanup_expired_links()
        finally:
            self.is_running = False

        metrics = {
            "revoked_count": revoked_count,
            "duration_seconds": round((datetime.now(UTC) - start_time).total_seconds(), 2),
        }
        log_job_run("share_cleanup", metrics)
        return metrics


share_cleanup_job = ShareCleanupJob()


async def run_share_cleanup_job() -> None:
    await share_cleanup_job.run_cleanup()


async def start_share_cleanup_scheduler():
    logger.info("Starting share cleanup scheduler", interval_hours=CLEANUP_INTERVAL_HOURS)

    while True:
        try:
            await share_cleanup_job.run_cleanup()
            await asyncio.sleep(CLEANUP_INTERVAL_HOURS * 3600)
        except Exception as e:
            logger.error("Error in share cleanup scheduler", error=str(e))
            await asyncio.sleep(60)
