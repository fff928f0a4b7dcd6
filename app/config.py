"""
Configuration settings
"""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "SafarUz API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5001

    # Database
    DATABASE_URL: Optional[str] = None
    PG_USER: Optional[str] = None
    PG_PASSWORD: str = ""
    PG_HOST: str = "localhost"
    PG_PORT: int = 5432
    PG_DATABASE: str = "safaruz"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # Security
    SECRET_KEY: str = "change-me-in-production-0123456789abcdef"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 12

    # Admin account created at startup when email and password are set
    ADMIN_USERNAME: str = "admin"
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None

    # AI assistant
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    AI_MODEL: str = "gpt-4.1-mini"
    AI_TEMPERATURE: float = 0.7

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # File Storage
    UPLOAD_DIR: str = "./uploads"
    MAX_UPLOAD_SIZE_MB: int = 5
    ALLOWED_IMAGE_EXTENSIONS: List[str] = [".jpg", ".jpeg", ".png", ".gif", ".webp"]

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        """DATABASE_URL if given, else a PostgreSQL URL from PG_*, else local SQLite."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.PG_USER:
            return URL.create(
                "postgresql+psycopg2",
                username=self.PG_USER,
                password=self.PG_PASSWORD,
                host=self.PG_HOST,
                port=self.PG_PORT,
                database=self.PG_DATABASE,
            ).render_as_string(hide_password=False)
        return "sqlite:///./safaruz.db"


settings = Settings()
