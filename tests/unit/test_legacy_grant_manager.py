from datetime import timedelta
from unittest.mock import AsyncMock, call

import pytest

from vault_access.models.domain.account_domain import Account
from vault_access.models.domain.errors import AccessError
from vault_access.models.domain.notification_domain import SendResult
from vault_access.services.legacy_grant_manager import LegacyAccessGrantManager
from vault_access.storage import keys


@pytest.fixture
def manager(store, notifier, clock):
    return LegacyAccessGrantManager(store, notifier, clock=clock, send_delay=0)


async def _inactive_account(store, clock):
    account = Account(
        id="u1",
        email="owner@example.com",
        created_at=clock.now - timedelta(days=365),
        last_activity_at=clock.now - timedelta(days=91),
        legacy_access_enabled=True,
    )
    await store.set(keys.account_key("u1"), account.to_record())
    await store.set(keys.beneficiary_key("u1", "b@example.com"), {"email": "b@example.com"})
    return account


@pytest.mark.asyncio
async def test_process_is_idempotent(manager, store, notifier, clock):
    account = await _inactive_account(store, clock)

    first = await manager.process_inactive_account(account, 91)
    second = await manager.process_inactive_account(account, 91)

    assert first.grants_issued == 1
    assert first.notifications_sent == 1
    assert second.already_processed is True
    assert second.grants_issued == 0
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_send_exception_falls_back_to_queue(store, clock):
    class ExplodingNotifier:
        def __init__(self):
            self.queued = []

        async def send(self, to, subject, template, variables) -> SendResult:
            raise ConnectionError("smtp gone")

        async def queue(self, to, subject, template, variables, grant_token=None) -> str:
            self.queued.append(to)
            return "q-1"

    notifier = ExplodingNotifier()
    manager = LegacyAccessGrantManager(store, notifier, clock=clock, send_delay=0)
    account = await _inactive_account(store, clock)

    summary = await manager.process_inactive_account(account, 91)

    assert summary.grants_issued == 1
    assert summary.notifications_queued == 1
    assert notifier.queued == ["b@example.com"]


@pytest.mark.asyncio
async def test_validate_unknown_token(manager):
    result = await manager.validate_access_grant("nope")
    assert result.valid is False
    assert result.error is AccessError.NOT_FOUND

    assert (await manager.validate_access_grant("")).error is AccessError.NOT_FOUND


@pytest.mark.asyncio
async def test_validate_marks_first_use(manager, store, clock):
    account = await _inactive_account(store, clock)
    await manager.process_inactive_account(account, 91)
    token = (await store.get(keys.grant_key("u1", "b@example.com")))["access_token"]

    clock.advance(days=2)
    result = await manager.validate_access_grant(token)
    assert result.valid is True
    assert result.grant.account_id == "u1"
    assert result.grant.first_used_at == clock.now

    clock.advance(days=1)
    again = await manager.validate_access_grant(token)
    assert again.grant.first_used_at == clock.now - timedelta(days=1)


@pytest.mark.asyncio
async def test_validate_expired_grant(manager, store, clock):
    account = await _inactive_account(store, clock)
    await manager.process_inactive_account(account, 91)
    token = (await store.get(keys.grant_key("u1", "b@example.com")))["access_token"]

    clock.advance(days=90)
    result = await manager.validate_access_grant(token)
    assert result.valid is False
    assert result.error is AccessError.EXPIRED


@pytest.mark.asyncio
async def test_fan_out_pauses_between_sends_only(store, notifier, clock, monkeypatch):
    sends_before_pause = []
    sleep = AsyncMock(side_effect=lambda delay: sends_before_pause.append(len(notifier.sent)))
    monkeypatch.setattr("vault_access.services.legacy_grant_manager.asyncio.sleep", sleep)

    account = await _inactive_account(store, clock)
    for email in ("c@example.com", "d@example.com"):
        await store.set(keys.beneficiary_key("u1", email), {"email": email})
    manager = LegacyAccessGrantManager(store, notifier, clock=clock, send_delay=0.1)

    summary = await manager.process_inactive_account(account, 91)

    assert summary.grants_issued == 3
    assert sleep.await_args_list == [call(0.1), call(0.1)]
    # no pause before the first send
    assert sends_before_pause == [1, 2]


@pytest.mark.asyncio
async def test_queued_grant_email_carries_its_token(manager, store, notifier, clock):
    notifier.fail = True
    account = await _inactive_account(store, clock)

    await manager.process_inactive_account(account, 91)

    grant = await store.get(keys.grant_key("u1", "b@example.com"))
    assert grant["email_sent"] is False
    assert notifier.queued[0]["grant_token"] == grant["access_token"]


@pytest.mark.asyncio
async def test_record_delivery(manager, store, notifier, clock):
    notifier.fail = True
    account = await _inactive_account(store, clock)
    await manager.process_inactive_account(account, 91)
    token = (await store.get(keys.grant_key("u1", "b@example.com")))["access_token"]

    clock.advance(minutes=10)
    assert await manager.record_delivery(token, clock.now) is True
    assert await manager.record_delivery(token, clock.now) is False
    assert await manager.record_delivery("unknown", clock.now) is False

    for key in (keys.grant_key("u1", "b@example.com"), keys.grant_token_key(token)):
        grant = await store.get(key)
        assert grant["email_sent"] is True
        assert grant["email_sent_at"] is not None
