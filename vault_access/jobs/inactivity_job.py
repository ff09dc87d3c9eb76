"""
Inactivity Job - runs the two legacy access passes.

Schedule:
- Warnings: daily
- Inactive accounts / grants: daily

Both passes are idempotent through stored markers, so an external cron may
invoke them as often as it likes. The `is_running` flags only stop a second
run inside the same process from piling on top of a slow one.

Usage:
    python -m vault_access.jobs.worker inactivity_warnings
    python -m vault_access.jobs.worker inactive_accounts
"""

import asyncio
from datetime import UTC, datetime

from vault_access.dependencies import get_inactivity_monitor
from vault_access.infrastructure.observability.logging import get_logger, log_job_run
from vault_access.services.inactivity_monitor import InactivityMonitor

logger = get_logger(__name__)

# Job configuration
JOB_INTERVAL_HOURS = 24


class InactivityJob:
    """Background job wrapper around the InactivityMonitor passes."""

    def __init__(self, monitor: InactivityMonitor | None = None):
        self._monitor = monitor
        self.warnings_running = False
        self.inactivity_running = False
        self.last_run_time: datetime | None = None

    @property
    def monitor(self) -> InactivityMonitor:
        if self._monitor is None:
            self._monitor = get_inactivity_monitor()
        return self._monitor

    async def run_warnings(self) -> dict:
        if self.warnings_running:
            logger.warning("Inactivity warning job already running, skipping")
            return {"skipped": True, "reason": "already_running"}

        self.warnings_running = True
        start_time = datetime.now(UTC)
        try:
            result = await self.monitor.check_inactivity_warnings()
        finally:
            self.warnings_running = False

        self.last_run_time = datetime.now(UTC)
        metrics = {
            **result.model_dump(exclude={"errors"}),
            "errors_count": len(result.errors),
            "duration_seconds": round((self.last_run_time - start_time).total_seconds(), 2),
        }
        log_job_run("inactivity_warnings", metrics, error_count=len(result.errors))
        return metrics

    async def run_inactive_accounts(self) -> dict:
        if self.inactivity_running:
            logger.warning("Inactive account job already running, skipping")
            return {"skipped": True, "reason": "already_running"}

        self.inactivity_running = True
        start_time = datetime.now(UTC)
        try:
            result = await self.monitor.check_inactive_accounts()
        finally:
            self.inactivity_running = False

        self.last_run_time = datetime.now(UTC)
        metrics = {
            **result.model_dump(exclude={"errors"}),
            "errors_count": len(result.errors),
            "duration_seconds": round((self.last_run_time - start_time).total_seconds(), 2),
        }
        log_job_run("inactive_accounts", metrics, error_count=len(result.errors))
        return metrics


inactivity_job = InactivityJob()


async def run_inactivity_warnings_job() -> None:
    await inactivity_job.run_warnings()


async def run_inactive_accounts_job() -> None:
    await inactivity_job.run_inactive_accounts()


async def start_inactivity_scheduler():
    """Run both passes every JOB_INTERVAL_HOURS, warnings first."""
    logger.info("Starting inactivity job scheduler", interval_hours=JOB_INTERVAL_HOURS)

    while True:
        try:
            await inactivity_job.run_warnings()
            await inactivity_job.run_inactive_accounts()
            await asyncio.sleep(JOB_INTERVAL_HOURS * 3600)

        except Exception as e:
            logger.error(
                "Error in inactivity job scheduler", error=str(e), error_type=type(e).__name__
            )
            # Avoid a tight error loop
            await asyncio.sleep(60)
