"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable. One-shot jobs are meant for an external cron; `*_scheduler` jobs
loop forever in a dedicated process.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from vault_access.config import settings
from vault_access.infrastructure.observability.logging import get_logger, setup_logging
from vault_access.jobs.email_queue_job import run_email_queue_job, start_email_queue_scheduler
from vault_access.jobs.inactivity_job import (
    run_inactive_accounts_job,
    run_inactivity_warnings_job,
    start_inactivity_scheduler,
)
from vault_access.jobs.share_cleanup_job import (
    run_share_cleanup_job,
    start_share_cleanup_scheduler,
)
from vault_access.storage.redis_client import fast_redis

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[object]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "inactivity_warnings": run_inactivity_warnings_job,
    "inactive_accounts": run_inactive_accounts_job,
    "share_cleanup": run_share_cleanup_job,
    "email_queue": run_email_queue_job,
    "inactivity_scheduler": start_inactivity_scheduler,
    "share_cleanup_scheduler": start_share_cleanup_scheduler,
    "email_queue_scheduler": start_email_queue_scheduler,
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "inactivity_scheduler").strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    await JOB_REGISTRY[name]()


async def _run_with_redis(job_name: str) -> None:
    await fast_redis.initialize()
    try:
        await run_worker(job_name)
    finally:
        await fast_redis.close()


def main() -> None:
    """CLI entrypoint."""
    setup_logging(log_level=settings.LOG_LEVEL)
    job_name = _resolve_job_name()
    asyncio.run(_run_with_redis(job_name))


if __name__ == "__main__":
    main()
