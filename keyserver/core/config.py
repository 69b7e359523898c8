from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DEBUG: bool = True
    ENVIRONMENT: str = "development"  # production, staging, development, test
    VERSION: str = "2.0.0"
    RATE_LIMIT_ENABLED: bool = False

    # 1. DB settings
    # SQLite file next to the process by default; point at Postgres with a postgresql:// URL.
    DATABASE_URL: str = "sqlite:///./keys.db"

    # 2. Admin console
    # No built-in passwords: both must come from the environment or .env.
    ADMIN_DEFAULT_PASSWORD: str = ""
    ADMIN_TEMP_PASSWORD: str = ""
    ADMIN_SESSION_TTL_HOURS: int = 24

    # 3. Key policy
    DEFAULT_KEY_HOURS: float = 24
    MAX_KEY_HOURS: Optional[float] = None  # e.g. 168 to cap keys at 7 days

    # 4. Redis (rate limiter only)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # 5. Observability
    NTFY_URL: str = "https://ntfy.sh"
    NTFY_TOPIC: str = "keyserver_errors"
    NTFY_ENABLED: bool = False

    # 6. CORS origins (override per deployment)
    BACKEND_CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        url = self.DATABASE_URL
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("sqlite://"):
            return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url

    @property
    def admin_passwords(self) -> list[str]:
        return [p for p in (self.ADMIN_DEFAULT_PASSWORD, self.ADMIN_TEMP_PASSWORD) if p]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    model_config = SettingsConfigDict(
        # OS environment wins; .env is only a fallback for local runs.
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
