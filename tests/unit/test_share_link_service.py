from datetime import timedelta

import pytest

from vault_access.models.domain.errors import AccessError
from vault_access.models.domain.share_domain import CreateShareOptions
from vault_access.services.share_link_service import ShareLinkService
from vault_access.storage import keys


@pytest.fixture
def service(store, clock):
    return ShareLinkService(store, clock=clock)


@pytest.mark.asyncio
async def test_create_returns_share_url(service, store):
    created = await service.create_share_link("owner-1", "col-1", CreateShareOptions())

    assert created.share_id.startswith("share_")
    assert created.share_url == f"https://vault.example.com/s/{created.share_id}"

    record = await store.get(keys.share_key(created.share_id))
    assert record["owner_id"] == "owner-1"
    assert record["view_count"] == 0
    assert record["revoked_at"] is None
    assert await store.get(keys.collection_shares_key("col-1")) == [created.share_id]
    assert await store.get(keys.owner_shares_key("owner-1")) == [created.share_id]


@pytest.mark.asyncio
async def test_share_ids_are_unique(service):
    ids = {
        (await service.create_share_link("owner-1", "col-1", CreateShareOptions())).share_id
        for _ in range(10)
    }
    assert len(ids) == 10


@pytest.mark.asyncio
async def test_password_protected_link(service, store):
    created = await service.create_share_link(
        "owner-1", "col-1", CreateShareOptions(password="hunter2")
    )

    missing = await service.validate_share_link(created.share_id)
    assert missing.valid is False
    assert missing.error is AccessError.PASSWORD_REQUIRED

    wrong = await service.validate_share_link(created.share_id, "wrong")
    assert wrong.valid is False
    assert wrong.error is AccessError.INVALID_PASSWORD

    ok = await service.validate_share_link(created.share_id, "hunter2")
    assert ok.valid is True
    assert ok.link.view_count == 1

    # failed attempts do not count as views
    record = await store.get(keys.share_key(created.share_id))
    assert record["view_count"] == 1


@pytest.mark.asyncio
async def test_password_is_never_stored_in_plaintext(service, store):
    created = await service.create_share_link(
        "owner-1", "col-1", CreateShareOptions(password="hunter2")
    )

    raw = store.data[keys.share_key(created.share_id)]
    assert "hunter2" not in raw
    assert (await store.get(keys.share_key(created.share_id)))["password_hash"].startswith("$2")


@pytest.mark.asyncio
async def test_validation_records_access(service, clock):
    created = await service.create_share_link("owner-1", "col-1", CreateShareOptions())

    await service.validate_share_link(created.share_id)
    clock.advance(minutes=5)
    result = await service.validate_share_link(created.share_id)

    assert result.link.view_count == 2
    assert result.link.last_accessed_at == clock.now


@pytest.mark.asyncio
async def test_unknown_share_is_not_found(service):
    for share_id in ("share_" + "0" * 64, "garbage", ""):
        result = await service.validate_share_link(share_id)
        assert result.error is AccessError.NOT_FOUND


@pytest.mark.asyncio
async def test_revoke_then_validate(service):
    created = await service.create_share_link("owner-1", "col-1", CreateShareOptions())

    revoked = await service.revoke_share_link("owner-1", created.share_id)
    assert revoked.success is True

    result = await service.validate_share_link(created.share_id)
    assert result.valid is False
    assert result.error is AccessError.REVOKED

    again = await service.revoke_share_link("owner-1", created.share_id)
    assert again.success is False
    assert again.error is AccessError.ALREADY_REVOKED


@pytest.mark.asyncio
async def test_revoke_by_non_owner_is_unauthorized(service):
    created = await service.create_share_link("owner-1", "col-1", CreateShareOptions())

    result = await service.revoke_share_link("intruder", created.share_id)
    assert result.success is False
    assert result.error is AccessError.UNAUTHORIZED
    assert (await service.validate_share_link(created.share_id)).valid is True


@pytest.mark.asyncio
async def test_revoke_unknown_link(service):
    result = await service.revoke_share_link("owner-1", "share_missing")
    assert result.error is AccessError.NOT_FOUND


@pytest.mark.asyncio
async def test_link_expires_at_expiry_instant(service, clock):
    created = await service.create_share_link(
        "owner-1", "col-1", CreateShareOptions(expires_in=timedelta(hours=1))
    )

    clock.advance(minutes=59)
    assert (await service.validate_share_link(created.share_id)).valid is True

    clock.advance(minutes=1)
    result = await service.validate_share_link(created.share_id)
    assert result.valid is False
    assert result.error is AccessError.EXPIRED

    # never becomes valid again
    clock.advance(days=30)
    assert (await service.validate_share_link(created.share_id)).error is AccessError.EXPIRED


@pytest.mark.asyncio
async def test_revocation_wins_over_expiry(service, clock):
    created = await service.create_share_link(
        "owner-1", "col-1", CreateShareOptions(expires_in=timedelta(hours=1))
    )
    await service.revoke_share_link("owner-1", created.share_id)
    clock.advance(hours=2)

    result = await service.validate_share_link(created.share_id)
    assert result.error is AccessError.REVOKED


@pytest.mark.asyncio
async def test_check_permission_access_levels(service, store):
    view_link = await service.create_share_link("owner-1", "col-1", CreateShareOptions())
    download_link = await service.create_share_link(
        "owner-1", "col-1", CreateShareOptions(access_level="download")
    )

    assert (await service.check_share_permission(view_link.share_id, "view")).allowed is True
    denied = await service.check_share_permission(view_link.share_id, "download")
    assert denied.allowed is False
    assert denied.error is AccessError.PERMISSION_DENIED

    assert (await service.check_share_permission(download_link.share_id, "view")).allowed is True
    assert (
        await service.check_share_permission(download_link.share_id, "download")
    ).allowed is True

    # probes are read-only
    assert (await store.get(keys.share_key(view_link.share_id)))["view_count"] == 0


@pytest.mark.asyncio
async def test_check_permission_on_revoked_and_expired(service, clock):
    revoked = await service.create_share_link("owner-1", "col-1", CreateShareOptions())
    await service.revoke_share_link("owner-1", revoked.share_id)
    expiring = await service.create_share_link(
        "owner-1", "col-1", CreateShareOptions(expires_in=timedelta(minutes=1))
    )
    clock.advance(minutes=1)

    assert (await service.check_share_permission(revoked.share_id, "view")).error is AccessError.REVOKED
    assert (
        await service.check_share_permission(expiring.share_id, "view")
    ).error is AccessError.EXPIRED
    assert (
        await service.check_share_permission("share_nope", "view")
    ).error is AccessError.NOT_FOUND


@pytest.mark.asyncio
async def test_cleanup_revokes_only_expired_links(service, store, clock):
    expiring = await service.create_share_link(
        "owner-1", "col-1", CreateShareOptions(expires_in=timedelta(days=1))
    )
    permanent = await service.create_share_link("owner-1", "col-1", CreateShareOptions())
    future = await service.create_share_link(
        "owner-1", "col-1", CreateShareOptions(expires_in=timedelta(days=10))
    )
    already = await service.create_share_link(
        "owner-1", "col-1", CreateShareOptions(expires_in=timedelta(days=1))
    )
    await service.revoke_share_link("owner-1", already.share_id)

    clock.advance(days=2)
    assert await service.cleanup_expired_links() == 1
    assert await service.cleanup_expired_links() == 0

    assert (await store.get(expiring.share_id))["revoked_at"] is not None
    assert (await store.get(permanent.share_id))["revoked_at"] is None
    assert (await store.get(future.share_id))["revoked_at"] is None


@pytest.mark.asyncio
async def test_cleanup_skips_malformed_records(service, store, clock):
    await store.set("share_broken", {"id": "share_broken"})
    await service.create_share_link(
        "owner-1", "col-1", CreateShareOptions(expires_in=timedelta(hours=1))
    )
    clock.advance(hours=1)

    assert await service.cleanup_expired_links() == 1


@pytest.mark.asyncio
async def test_listing_and_stats(service, clock):
    first = await service.create_share_link(
        "owner-1", "col-1", CreateShareOptions(expires_in=timedelta(days=3))
    )
    second = await service.create_share_link("owner-1", "col-2", CreateShareOptions())
    revoked = await service.create_share_link("owner-1", "col-1", CreateShareOptions())
    await service.create_share_link("owner-2", "col-1", CreateShareOptions())
    await service.revoke_share_link("owner-1", revoked.share_id)
    await service.validate_share_link(second.share_id)

    col_1 = await service.list_collection_shares("owner-1", "col-1")
    assert [link.id for link in col_1] == [first.share_id]

    owned = await service.list_owner_shares("owner-1")
    assert {link.id for link in owned} == {first.share_id, second.share_id}

    stats = await service.get_share_stats("owner-1")
    assert stats.total_shares == 2
    assert stats.active_shares == 2
    assert stats.total_views == 1
    assert stats.expiring_this_week == 1


@pytest.mark.asyncio
async def test_lifecycle_is_audited(service, store):
    created = await service.create_share_link("owner-1", "col-1", CreateShareOptions())
    await service.revoke_share_link("owner-1", created.share_id)

    actions = [(await store.get(k))["action"] for k in store.keys_with_prefix(keys.AUDIT_LOG_PREFIX)]
    assert sorted(actions) == ["share_link_created", "share_link_revoked"]
