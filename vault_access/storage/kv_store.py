"""
Key-value store contract consumed by every service.

Services receive a `KeyValueStore` through their constructor; production wires
`RedisKeyValueStore`, tests wire the in-memory fake from `tests/conftest.py`.
Values are JSON-compatible structures (dicts, lists, scalars).
"""

import json
from dataclasses import dataclass, field
from typing import Any, Protocol

from vault_access.config import settings
from vault_access.infrastructure.observability.logging import get_logger
from vault_access.storage.redis_client import FastRedisClient, StoreError, fast_redis

logger = get_logger(__name__)

__all__ = ["KeyValueStore", "RedisKeyValueStore", "ScanPage", "StoreError", "get_by_prefix"]


@dataclass(slots=True)
class ScanPage:
    """One page of a prefix scan. `next_cursor` is None once the scan is exhausted."""

    items: list[tuple[str, Any]] = field(default_factory=list)
    next_cursor: str | None = None


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def scan(self, prefix: str, cursor: str | None = None) -> ScanPage: ...

    async def ping(self) -> bool: ...


async def get_by_prefix(store: KeyValueStore, prefix: str) -> list[tuple[str, Any]]:
    """
    Drain a prefix scan into a list of (key, value) pairs.

    Keys seen twice (Redis SCAN may repeat) are kept once.
    """
    seen: dict[str, Any] = {}
    cursor: str | None = None
    while True:
        page = await store.scan(prefix, cursor)
        for key, value in page.items:
            seen[key] = value
        if page.next_cursor is None:
            break
        cursor = page.next_cursor
    return list(seen.items())


def _escape_glob(prefix: str) -> str:
    """Escape Redis MATCH metacharacters so the prefix is matched literally."""
    return "".join(f"\\{c}" if c in "*?[]\\" else c for c in prefix)


class RedisKeyValueStore:
    """JSON-over-Redis implementation of the store contract."""

    def __init__(self, client: FastRedisClient | None = None, scan_count: int | None = None):
        self.client = client or fast_redis
        self.scan_count = scan_count or settings.REDIS_SCAN_COUNT

    async def get(self, key: str) -> Any | None:
        raw = await self.client.get(key)
        if raw is None:
            return None
        return self._decode(key, raw)

    async def set(self, key: str, value: Any) -> None:
        await self.client.set(key, json.dumps(value, separators=(",", ":")))

    async def scan(self, prefix: str, cursor: str | None = None) -> ScanPage:
        start = int(cursor) if cursor else 0
        next_cursor, keys = await self.client.scan(
            f"{_escape_glob(prefix)}*", cursor=start, count=self.scan_count
        )
        values = await self.client.mget(keys)

        items = [
            (key, self._decode_lenient(key, raw))
            for key, raw in zip(keys, values, strict=True)
            if raw is not None  # deleted between SCAN and MGET
        ]
        return ScanPage(items=items, next_cursor=str(next_cursor) if next_cursor else None)

    async def ping(self) -> bool:
        return await self.client.ping()

    @staticmethod
    def _decode(key: str, raw: str) -> Any:
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Stored value is not valid JSON", key=key[:30], error=str(e))
            raise StoreError(f"Corrupt value: {e}", operation="decode", key=key) from e

    @staticmethod
    def _decode_lenient(key: str, raw: str) -> Any:
        """Scans hand back undecodable values as raw strings so one bad record
        fails its own item, not the whole page."""
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Skipping JSON decode for corrupt value", key=key[:30])
            return raw
