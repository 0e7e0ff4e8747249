"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Admin REST backend (collaborator)
    admin_api_base_url: str = "http://localhost:8080/api"
    admin_api_timeout_seconds: float = 10.0
    login_path: str = "/yushan-admin/login"

    # List defaults
    default_page_size: int = 10
    default_sort: str = "createTime"
    default_order: str = "desc"

    # Server messages that mean "blocked by dependent records"
    referential_integrity_markers: List[str] = [
        "foreign key constraint",
        "fk_novel_category",
        "still referenced",
    ]

    # Recent failures kept for operator debugging
    failure_log_size: int = 50

    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # API Settings
    api_v1_prefix: str = "/api/v1"
    project_name: str = "Yushan Moderation Console"
    version: str = "1.0.0"
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
