from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENV: str = "dev"
    SERVICE_PORT: int = 4000
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # "sql" (PostgreSQL or SQLite file) or "mongo"
    STORE_BACKEND: str = "sql"
    DATABASE_URL: str = "sqlite+aiosqlite:///./cms.db"
    DB_CREATE_SCHEMA: bool = True

    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "cms"

    JWT_SECRET: str | None = None
    JWT_ALG: str = "HS256"
    SESSION_TTL_DAYS: int = 7

    BCRYPT_ROUNDS: int = 10
    PASSWORD_MIN_LENGTH: int = 6
    PASSWORD_RESET_TTL_MINUTES: int = 60
    RESET_TOKEN_PURGE_MINUTES: int = 30       # 0 disables the scheduled purge

    FRONTEND_BASE_URL: str = "http://localhost:8080"
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])

    SMTP_HOST: str | None = None
    SMTP_PORT: int = 465
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    MAIL_FROM: str | None = None
    EMAIL_ENABLED: bool = True
    SMTP_TIMEOUT_SECONDS: int = 10

    SENTRY_DSN: str | None = None
    GIT_SHA: str | None = None

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() in {"prod", "production"}

settings = Settings()
