# vault_access/storage/redis_client.py
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from vault_access.config import settings
from vault_access.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class StoreError(Exception):
    """Raised when a key-value operation cannot be completed."""

    def __init__(self, message: str, operation: str | None = None, key: str | None = None):
        super().__init__(message)
        self.operation = operation
        self.key = key


class FastRedisClient:
    """Pooled asyncio Redis client used as the system of record."""

    def __init__(self, url: str | None = None):
        self.url = url or settings.REDIS_URL
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            pool_config = settings.get_redis_pool_config()
            logger.info(
                "Attempting Redis connection",
                url_preview=self.url.split("@")[-1][:30],
                max_connections=pool_config["max_connections"],
            )

            self.pool = ConnectionPool.from_url(
                self.url,
                retry_on_timeout=True,
                health_check_interval=30,
                decode_responses=True,
                **pool_config,
            )
            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info("Fast Redis client initialized successfully")

        except Exception as e:
            logger.error("Failed to initialize fast Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Fast Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def _ensure_initialized(self):
        if not self._initialized:
            logger.warning("Redis not initialized, attempting to initialize")
            await self.initialize()

    async def ping(self) -> bool:
        """Test Redis connection"""
        try:
            await self._ensure_initialized()
            return bool(await self.client.ping())
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def get(self, key: str) -> str | None:
        try:
            await self._ensure_initialized()
            return await self.client.get(key)
        except Exception as e:
            logger.error("Redis GET failed", key=key[:30], error=str(e))
            raise StoreError(f"GET failed: {e}", operation="get", key=key) from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self._ensure_initialized()
            await self.client.set(key, value)
        except Exception as e:
            logger.error("Redis SET failed", key=key[:30], error=str(e))
            raise StoreError(f"SET failed: {e}", operation="set", key=key) from e

    async def mget(self, keys: list[str]) -> list[str | None]:
        if not keys:
            return []
        try:
            await self._ensure_initialized()
            return await self.client.mget(keys)
        except Exception as e:
            logger.error("Redis MGET failed", key_count=len(keys), error=str(e))
            raise StoreError(f"MGET failed: {e}", operation="mget") from e

    async def scan(self, match: str, cursor: int = 0, count: int = 200) -> tuple[int, list[str]]:
        """One SCAN step. Returns (next_cursor, keys); next_cursor 0 means done."""
        try:
            await self._ensure_initialized()
            next_cursor, keys = await self.client.scan(cursor=cursor, match=match, count=count)
            return int(next_cursor), list(keys)
        except Exception as e:
            logger.error("Redis SCAN failed", match=match[:30], error=str(e))
            raise StoreError(f"SCAN failed: {e}", operation="scan", key=match) from e


# Global instance
fast_redis = FastRedisClient()
