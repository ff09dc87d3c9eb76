from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Public base URL used to build share and legacy access links
    APP_URL: str = "http://localhost:3000"

    # Supabase auth (owner bearer tokens on the HTTP edge)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_JWKS_URL: str | None = None

    # Redis settings
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_SOCKET_TIMEOUT: float = 10.0
    REDIS_SCAN_COUNT: int = 200

    # Mail service (template rendering and transport live behind this endpoint)
    MAILER_URL: str | None = None
    MAILER_API_KEY: str | None = None
    MAILER_TIMEOUT_SECONDS: float = 10.0
    NOTIFICATION_SEND_DELAY_MS: int = 100  # pause between fan-out sends

    # Email retry queue
    EMAIL_QUEUE_MAX_ATTEMPTS: int = 3
    EMAIL_QUEUE_INITIAL_DELAY_MINUTES: int = 5

    # Legacy access policy defaults (per-account values win)
    LEGACY_GRANT_VALID_DAYS: int = 90
    DEFAULT_INACTIVITY_THRESHOLD_DAYS: int = 90
    DEFAULT_WARNING_LEAD_DAYS: int = 14

    # Share links
    SHARE_PASSWORD_BCRYPT_ROUNDS: int = 12

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def jwks_url(self) -> str:
        if self.SUPABASE_JWKS_URL:
            return self.SUPABASE_JWKS_URL
        base = self.SUPABASE_URL.rstrip("/")
        return f"{base}/auth/v1/.well-known/jwks.json"

    def app_base_url(self) -> str:
        """APP_URL without a trailing slash."""
        return self.APP_URL.rstrip("/")

    def share_url(self, share_id: str) -> str:
        return f"{self.app_base_url()}/s/{share_id}"

    def legacy_access_url(self, token: str) -> str:
        return f"{self.app_base_url()}/legacy-access/{token}"

    def notification_send_delay_seconds(self) -> float:
        return max(self.NOTIFICATION_SEND_DELAY_MS, 0) / 1000

    def get_redis_pool_config(self) -> dict:
        """
        Get Redis connection pool configuration.
        Development keeps the pool small.
        """
        config = {
            "max_connections": self.REDIS_MAX_CONNECTIONS,
            "socket_timeout": self.REDIS_SOCKET_TIMEOUT,
            "socket_connect_timeout": self.REDIS_SOCKET_TIMEOUT,
        }

        if self.environment == "development":
            config.update({"max_connections": min(self.REDIS_MAX_CONNECTIONS, 8)})

        return config


settings = Settings()
