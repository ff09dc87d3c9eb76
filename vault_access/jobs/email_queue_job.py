"""
Email Queue Job - retries notifications that failed their first send.
"""

import asyncio

from vault_access.dependencies import get_email_queue_service
from vault_access.infrastructure.observability.logging import get_logger, log_job_run

logger = get_logger(__name__)

QUEUE_INTERVAL_MINUTES = 5


async def run_email_queue_job() -> dict:
    stats = await get_email_queue_service().process_queue()
    log_job_run("email_queue", stats, error_count=stats["errors"])
    return stats


async def start_email_queue_scheduler():
    logger.info("Starting email queue scheduler", interval_minutes=QUEUE_INTERVAL_MINUTES)

    while True:
        try:
            await run_email_queue_job()
            await asyncio.sleep(QUEUE_INTERVAL_MINUTES * 60)
        except Exception as e:
            logger.error("Error in email queue scheduler", error=str(e))
            await asyncio.sleep(60)
