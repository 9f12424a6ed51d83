"""Application configuration"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API
    API_V1_PREFIX: str = "/api"
    PROJECT_NAME: str = "AssetDesk API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Security
    # WHY: Tokens are issued by the external identity provider; we only verify them.
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 1440  # 24 hours

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./assetdesk.db"

    # URLs
    # WHY: Deep links in shared WhatsApp messages point back at the web app
    APP_URL: str = "http://localhost:3000"

    # S3 / AWS (asset images)
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: str = "us-east-1"
    S3_ENDPOINT: Optional[str] = None
    S3_BUCKET_NAME: str = "assetdesk-attachments"
    S3_PRESIGNED_URL_EXPIRY: int = 3600  # seconds

    # OpenAI API (maintenance suggestions)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_MAX_TOKENS: int = 1000
    OPENAI_TEMPERATURE: float = 0.7

    # AI quota
    AI_QUOTA_DEFAULT_LIMIT: int = 100  # requests per calendar month
    AI_HISTORY_TASK_LIMIT: int = 5  # recent tasks sent as prompt context

    # Organizations
    DEFAULT_CURRENCY: str = "USD"
    INVITATION_EXPIRY_DAYS: int = 7

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def ai_enabled(self) -> bool:
        """Whether an OpenAI key is configured."""
        return bool(self.OPENAI_API_KEY)

    @property
    def async_database_url(self) -> str:
        """Get async database URL"""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")


settings = Settings()
