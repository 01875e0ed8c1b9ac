"""
Configuration management using Pydantic Settings.
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Configuration
    log_level: str = "INFO"
    environment: str = "development"

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_title: str = "PYQ Retrieval API"
    api_version: str = "1.0.0"
    api_description: str = "Conversational previous-year-question search for the exam preparation assistant"

    # Durable Cache Configuration (Redis)
    redis_url: Optional[str] = None
    cache_namespace: str = "pyq-cache"
    cache_ttl_seconds: int = 15 * 60
    cache_max_entries: int = 250
    cache_max_payload_bytes: int = 512_000

    # Conversation Context Configuration
    context_ttl_seconds: int = 60 * 60

    # Question Archive Configuration
    archive_parquet_path: Optional[str] = None
    default_exam_code: str = "UPSC"
    min_archive_year: int = 1990
    max_question_chars: int = 2000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
