"""
Account Service - read side of the user-management records plus the login hook.

Accounts and beneficiaries are owned elsewhere; this service reads them for the
inactivity passes and writes back only status/activity fields.
"""

from collections.abc import AsyncIterator, Callable
from datetime import datetime

from pydantic import ValidationError

from vault_access.infrastructure.observability.logging import get_logger
from vault_access.models.domain.account_domain import Account, Beneficiary
from vault_access.models.domain.common import utc_now
from vault_access.storage import keys
from vault_access.storage.kv_store import KeyValueStore, get_by_prefix

logger = get_logger(__name__)


class AccountRecordError(Exception):
    """Raised when a stored account record cannot be parsed."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class AccountService:
    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    async def get_account(self, account_id: str) -> Account | None:
        record = await self.store.get(keys.account_key(account_id))
        if record is None:
            return None
        return Account.model_validate(record)

    async def save_account(self, account: Account) -> None:
        await self.store.set(keys.account_key(account.id), account.to_record())

    async def iter_account_records(self) -> AsyncIterator[tuple[str, dict]]:
        """
        Yield raw (key, record) pairs page by page, so a pass never needs the
        whole account population in memory.
        """
        cursor: str | None = None
        while True:
            page = await self.store.scan(keys.ACCOUNT_PREFIX, cursor)
            for key, value in page.items:
                yield key, value
            if page.next_cursor is None:
                break
            cursor = page.next_cursor

    @staticmethod
    def parse_account(key: str, record) -> Account:
        try:
            return Account.model_validate(record)
        except ValidationError as e:
            raise AccountRecordError(f"Malformed account record: {e}", key=key) from e

    async def list_beneficiaries(self, account_id: str) -> list[Beneficiary]:
        beneficiaries = []
        for key, value in await get_by_prefix(self.store, keys.beneficiary_prefix(account_id)):
            try:
                beneficiaries.append(Beneficiary.model_validate({"account_id": account_id, **value}))
            except (ValidationError, TypeError) as e:
                logger.error(
                    "Malformed beneficiary record",
                    account_id=account_id,
                    beneficiary_key=key,
                    error=str(e),
                )
        return beneficiaries

    async def record_login(self, account_id: str) -> Account | None:
        """
        Reset the inactivity clock on any authenticated action.

        An inactive account becomes active again and gets `reactivated_at`.
        Grants already issued to beneficiaries stay valid until their own expiry.

        Returns:
            The updated account, or None if the account does not exist.
        """
        account = await self.get_account(account_id)
        if account is None:
            logger.warning("Login recorded for unknown account", account_id=account_id)
            return None

        now = self.clock()
        account.last_activity_at = now

        if account.account_status == "inactive":
            account.account_status = "active"
            account.reactivated_at = now
            logger.info("Account reactivated", account_id=account_id)

        await self.save_account(account)
        logger.debug("Login recorded", account_id=account_id)
        return account
