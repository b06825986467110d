"""
Configuration management for DocShelf API
Uses pydantic-settings for environment variable validation
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./docshelf.db"
    DATABASE_ECHO: bool = False

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_RELOAD: bool = False

    # Security
    API_KEY_PREFIX: str = "ds_"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Application
    APP_NAME: str = "DocShelf"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Redis & Celery
    REDIS_URL: str = "redis://localhost:6379/0"

    # Storage
    STORAGE_BACKEND: str = "local"  # "local" or "s3"
    UPLOAD_DIR: str = "./uploads"
    MAX_UPLOAD_SIZE: int = 50 * 1024 * 1024  # 50MB
    SIGNED_URL_EXPIRY: int = 3600  # seconds

    # S3 Storage (if STORAGE_BACKEND="s3")
    S3_BUCKET_NAME: str = "pdf-documents"
    S3_ACCESS_KEY_ID: str = ""
    S3_SECRET_ACCESS_KEY: str = ""
    S3_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: str = ""  # MinIO, Supabase S3 gateway, etc.

    # Text extraction
    MIN_TEXT_LENGTH: int = 50  # below this the text layer is treated as missing
    THUMBNAIL_WIDTH: int = 300
    ENRICHMENT_PENDING_TIMEOUT_MINUTES: int = 15  # pending longer than this: task never picked up
    ENRICHMENT_PROCESSING_TIMEOUT_MINUTES: int = 30  # processing longer than this: worker crashed
    TEXT_SEARCH_CONTEXT_CHARS: int = 50
    TEXT_SEARCH_MAX_MATCHES: int = 100

    # LLM (LiteLLM format: provider/model)
    LLM_MODEL: str = "groq/llama-3.3-70b-versatile"
    LLM_API_KEY: str = ""
    LLM_API_BASE: str = ""
    LLM_TIMEOUT: int = 60
    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_TOKENS: int = 1024
    CHAT_CONTEXT_CHARS: int = 4000
    CHAT_HISTORY_MESSAGES: int = 10
    OCR_TEMPERATURE: float = 0.3
    OCR_MAX_TOKENS: int = 8000

    # Retry Logic
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_EXPONENTIAL_BASE: int = 2

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_UPLOAD: str = "20/hour"
    RATE_LIMIT_CHAT: str = "10/minute"
    RATE_LIMIT_LOGIN: str = "10/minute"


# Global settings instance
settings = Settings()
