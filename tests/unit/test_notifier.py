import httpx
import pytest

from vault_access.models.domain.errors import AccessError
from vault_access.models.domain.notification_domain import SendResult
from vault_access.services.notifier import HttpNotifier, NotifierError, deliver_or_queue
from vault_access.storage import keys

ENDPOINT = "https://mailer.internal/send"


def _notifier(store, handler, api_key="mailer-key"):
    return HttpNotifier(
        store, endpoint=ENDPOINT, api_key=api_key, transport=httpx.MockTransport(handler)
    )


@pytest.mark.asyncio
async def test_send_posts_template_payload(store):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = request.read()
        return httpx.Response(200, json={"id": "msg_123"})

    result = await _notifier(store, handler).send(
        "a@example.com", "Hello", "inactivity-warning", {"userName": "Ann"}
    )

    assert result.success is True
    assert result.message_id == "msg_123"
    assert captured["auth"] == "Bearer mailer-key"
    assert b'"template":"inactivity-warning"' in captured["body"].replace(b" ", b"")


@pytest.mark.asyncio
async def test_send_http_error_is_failure(store):
    def handler(request):
        return httpx.Response(503)

    result = await _notifier(store, handler).send("a@example.com", "Hi", "t", {})

    assert result.success is False
    assert result.error == "HTTP 503"


@pytest.mark.asyncio
async def test_send_transport_error_is_failure(store):
    def handler(request):
        raise httpx.ConnectError("refused")

    result = await _notifier(store, handler).send("a@example.com", "Hi", "t", {})

    assert result.success is False


@pytest.mark.asyncio
async def test_send_without_endpoint(store, monkeypatch):
    monkeypatch.setattr("vault_access.services.notifier.settings.MAILER_URL", None)

    result = await HttpNotifier(store).send("a@example.com", "Hi", "t", {})

    assert result.success is False


@pytest.mark.asyncio
async def test_queue_writes_pending_entry(store):
    notifier = _notifier(store, lambda request: httpx.Response(200))

    email_id = await notifier.queue("a@example.com", "Hi", "inactivity-warning", {"x": 1})

    entry = await store.get(keys.email_queue_key(email_id))
    assert entry["status"] == "pending"
    assert entry["attempts"] == 0
    assert entry["max_attempts"] == 3
    assert entry["variables"] == {"x": 1}


@pytest.mark.asyncio
async def test_deliver_or_queue_success(notifier):
    outcome = await deliver_or_queue(notifier, "a@example.com", "Hi", "t", {})

    assert outcome.sent is True
    assert notifier.queued == []


@pytest.mark.asyncio
async def test_deliver_or_queue_falls_back_to_queue(notifier):
    notifier.fail = True

    outcome = await deliver_or_queue(notifier, "a@example.com", "Hi", "t", {})

    assert outcome.sent is False
    assert outcome.queue_id == "queued-1"
    assert outcome.error is AccessError.DELIVERY_FAILED


@pytest.mark.asyncio
async def test_deliver_or_queue_raises_when_queue_fails():
    class BrokenNotifier:
        async def send(self, to, subject, template, variables):
            return SendResult(success=False, error="down")

        async def queue(self, to, subject, template, variables, grant_token=None):
            raise RuntimeError("store unavailable")

    with pytest.raises(NotifierError) as exc_info:
        await deliver_or_queue(BrokenNotifier(), "a@example.com", "Hi", "t", {})
    assert exc_info.value.recipient == "a@example.com"
