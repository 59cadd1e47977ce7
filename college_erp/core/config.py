from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Async driver URL. Postgres deployments use postgresql+asyncpg://...
    DATABASE_URL: str = "sqlite+aiosqlite:///./college_erp.db"

    # If DEV and you hit SSL cert issues on Windows, set DB_SSL_VERIFY=false in .env
    DB_SSL_VERIFY: bool = True

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    SUPER_ADMIN_EMAIL: str | None = None
    SUPER_ADMIN_PASSWORD: str | None = None
    SUPER_ADMIN_NAME: str | None = "Super Admin"
    ENV: str = "dev"  # "dev" or "prod"

    # --- REQUEST ROUTING ---
    # Applied to new requests that don't carry their own maxResponseTime (hours)
    DEFAULT_MAX_RESPONSE_HOURS: int | None = None
    # Shared secret for the cron-triggered escalation sweep
    JOB_SECRET: str | None = None

    # --- RATE LIMITING ---
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: str = "10/minute"
    REDIS_URL: str | None = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
