"""
Inactivity Monitor - scheduled passes over the account population.

Pass A (`check_inactivity_warnings`) warns account owners on the single day
their inactivity reaches `threshold - lead` days. Pass B
(`check_inactive_accounts`) hands accounts past the threshold to the
LegacyAccessGrantManager. Both passes are safe to re-run on overlapping
schedules: every side effect is gated by a marker checked before it runs.
"""

from collections.abc import Callable
from datetime import datetime

from vault_access.config import settings
from vault_access.infrastructure.audit import AuditLogger
from vault_access.infrastructure.observability.logging import get_logger
from vault_access.models.domain.account_domain import Account
from vault_access.models.domain.common import utc_now
from vault_access.models.domain.grant_domain import (
    InactivityPassResult,
    WarningPassResult,
    WarningRecord,
)
from vault_access.services.account_service import AccountService
from vault_access.services.legacy_grant_manager import LegacyAccessGrantManager
from vault_access.services.notifier import Notifier, deliver_or_queue
from vault_access.storage import keys
from vault_access.storage.idempotency import ensure_once
from vault_access.storage.kv_store import KeyValueStore

logger = get_logger(__name__)

WARNING_TEMPLATE = "inactivity-warning"


def is_warning_day(days_since_activity: int, warn_at: int) -> bool:
    """Exact-day match: a run missed on that day skips the warning for the episode."""
    return days_since_activity == warn_at


def _error_record(key: str, error: Exception) -> dict:
    return {
        "account_key": key,
        "error": str(error),
        "error_type": type(error).__name__,
        "timestamp": utc_now().isoformat(),
    }


class InactivityMonitor:
    def __init__(
        self,
        store: KeyValueStore,
        notifier: Notifier,
        accounts: AccountService | None = None,
        grant_manager: LegacyAccessGrantManager | None = None,
        audit: AuditLogger | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.accounts = accounts or AccountService(store, clock=clock)
        self.grant_manager = grant_manager or LegacyAccessGrantManager(
            store, notifier, accounts=self.accounts, audit=audit, clock=clock
        )

    # =======================================================================
    # PASS A - WARNINGS
    # =======================================================================

    async def check_inactivity_warnings(self) -> WarningPassResult:
        """Send the pre-inactivity warning to accounts that hit their warning day."""
        logger.info("Checking for inactivity warnings")
        now = self.clock()
        result = WarningPassResult()

        async for key, record in self.accounts.iter_account_records():
            try:
                account = self.accounts.parse_account(key, record)
                if not account.legacy_access_enabled or account.account_status != "active":
                    continue

                result.accounts_checked += 1
                await self._warn_account(account, now, result)

            except Exception as e:
                # One bad account never aborts the batch
                result.errors.append(_error_record(key, e))
                logger.error(
                    "Inactivity warning failed for account",
                    account_key=key,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        logger.info(
            "Inactivity warnings check complete",
            accounts_checked=result.accounts_checked,
            warnings_sent=result.warnings_sent,
            warnings_queued=result.warnings_queued,
            errors_count=len(result.errors),
        )
        return result

    async def _warn_account(
        self, account: Account, now: datetime, result: WarningPassResult
    ) -> None:
        days_since = account.days_since_activity(now)
        if not is_warning_day(days_since, account.warning_day):
            return

        days_until_inactive = account.inactivity_threshold_days - days_since

        async def send_warning() -> dict | None:
            beneficiaries = await self.accounts.list_beneficiaries(account.id)
            outcome = await deliver_or_queue(
                self.notifier,
                to=account.email,
                subject=(
                    "Action Required: Your account will become inactive in "
                    f"{days_until_inactive} days"
                ),
                template=WARNING_TEMPLATE,
                variables={
                    "userName": account.display_name,
                    "userEmail": account.email,
                    "daysSinceLastLogin": days_since,
                    "daysUntilInactive": days_until_inactive,
                    "lastLoginDate": account.activity_reference.date().isoformat(),
                    "hasBeneficiaries": bool(beneficiaries),
                    "beneficiaries": [b.email for b in beneficiaries],
                    "loginUrl": f"{settings.app_base_url()}/login",
                    "settingsUrl": f"{settings.app_base_url()}/settings/account#legacy",
                    "appUrl": settings.app_base_url(),
                },
            )
            if not outcome.sent:
                # No record: its absence makes the next run on this day try again
                result.warnings_queued += 1
                return None

            return WarningRecord(
                account_id=account.id,
                warning_date=now.date(),
                sent_at=now,
                days_until_inactive=days_until_inactive,
            ).to_record()

        outcome = await ensure_once(
            self.store, keys.warning_key(account.id, now.date()), send_warning
        )
        if outcome.performed:
            result.warnings_sent += 1
            logger.info("Inactivity warning sent", account_id=account.id)
        elif outcome.already_processed:
            logger.info("Warning already sent today", account_id=account.id)

    # =======================================================================
    # PASS B - INACTIVITY / GRANTS
    # =======================================================================

    async def check_inactive_accounts(self) -> InactivityPassResult:
        """Mark accounts past their threshold inactive and grant beneficiary access."""
        logger.info("Checking for inactive accounts")
        now = self.clock()
        result = InactivityPassResult()

        async for key, record in self.accounts.iter_account_records():
            try:
                account = self.accounts.parse_account(key, record)
                if not account.legacy_access_enabled or account.account_status == "inactive":
                    continue

                result.accounts_checked += 1
                days_since = account.days_since_activity(now)
                if days_since < account.inactivity_threshold_days:
                    continue

                summary = await self.grant_manager.process_inactive_account(account, days_since)
                if summary.already_processed:
                    result.accounts_skipped_processed += 1
                    continue

                result.accounts_marked_inactive += int(summary.marked_inactive)
                result.access_grants_issued += summary.grants_issued
                result.notifications_queued += summary.notifications_queued

            except Exception as e:
                result.errors.append(_error_record(key, e))
                logger.error(
                    "Inactivity processing failed for account",
                    account_key=key,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        logger.info(
            "Inactive accounts check complete",
            accounts_checked=result.accounts_checked,
            accounts_marked_inactive=result.accounts_marked_inactive,
            access_grants_issued=result.access_grants_issued,
            notifications_queued=result.notifications_queued,
            errors_count=len(result.errors),
        )
        return result
