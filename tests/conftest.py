import copy
import json
from datetime import UTC, datetime, timedelta

import pytest

from vault_access.auth.verify import auth_dependency, current_user_id
from vault_access.config import settings
from vault_access.models.domain.notification_domain import SendResult
from vault_access.storage.kv_store import ScanPage


class InMemoryKeyValueStore:
    """Dict-backed store with the same JSON round-trip and paged scans as Redis."""

    def __init__(self, page_size: int = 2):
        self.data: dict[str, str] = {}
        self.page_size = page_size

    async def get(self, key: str):
        raw = self.data.get(key)
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value) -> None:
        self.data[key] = json.dumps(value)

    async def scan(self, prefix: str, cursor: str | None = None) -> ScanPage:
        matching = sorted(k for k in self.data if k.startswith(prefix))
        start = int(cursor) if cursor else 0
        end = start + self.page_size
        items = [(k, json.loads(self.data[k])) for k in matching[start:end]]
        return ScanPage(items=items, next_cursor=str(end) if end < len(matching) else None)

    async def ping(self) -> bool:
        return True

    def keys_with_prefix(self, prefix: str) -> list[str]:
        return sorted(k for k in self.data if k.startswith(prefix))


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []
        self.queued: list[dict] = []

    async def send(self, to, subject, template, variables) -> SendResult:
        if self.fail:
            return SendResult(success=False, error="mailer down")
        self.sent.append(
            {"to": to, "subject": subject, "template": template, "variables": copy.deepcopy(variables)}
        )
        return SendResult(success=True, message_id=f"msg-{len(self.sent)}")

    async def queue(self, to, subject, template, variables, grant_token=None) -> str:
        self.queued.append(
            {"to": to, "subject": subject, "template": template, "grant_token": grant_token}
        )
        return f"queued-{len(self.queued)}"


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    monkeypatch.setattr(settings, "SHARE_PASSWORD_BCRYPT_ROUNDS", 4)
    monkeypatch.setattr(settings, "NOTIFICATION_SEND_DELAY_MS", 0)
    monkeypatch.setattr(settings, "APP_URL", "https://vault.example.com")


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 6, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "owner-1"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app, user_id: str = "owner-1"):
        app.dependency_overrides[auth_dependency] = auth_override
        app.dependency_overrides[current_user_id] = lambda: user_id

    return _apply
