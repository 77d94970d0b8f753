from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:5000/api/v1"
    SOCKET_URL: str = ""
    HTTP_TIMEOUT_SECONDS: float = 30.0

    THROTTLE_DELAY_MS: int = 100
    MAX_RETRIES: int = 3
    BACKOFF_BASE_MS: int = 1000
    BACKOFF_MAX_MS: int = 10000

    SESSION_EXPIRED_REDIRECT_SECONDS: float = 2.0
    LOGIN_PATH: str = "/login?expired=true"

    TYPING_IDLE_SECONDS: float = 1.0
    OPTIMISTIC_MATCH_WINDOW_SECONDS: float = 5.0

    POSTGRES_USER: str = "tutorlink"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "tutorlink"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PUBSUB_CHANNEL: str = "tutorlink.notifications"

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"

    CORS_ORIGINS: list[str] = ["*"]

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def socket_url(self) -> str:
        """Socket origin; defaults to the API base with its /api/... path stripped."""
        if self.SOCKET_URL:
            return self.SOCKET_URL
        base, sep, _ = self.API_BASE_URL.partition("/api/")
        return base if sep else self.API_BASE_URL.rstrip("/")

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
