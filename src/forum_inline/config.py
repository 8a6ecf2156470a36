"""
Application configuration management.

This module handles configuration from environment variables using Pydantic Settings.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application configuration from environment variables.

    All settings can be overridden via environment variables with the same name.
    """

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 4

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Base URL used to build links in rendered markup and draft file URLs
    wwwroot: str = "http://localhost:8000"

    # Database
    database_url: str = "sqlite:///./forum_inline.db"
    database_pool_size: int = 10
    database_echo_sql: bool = False

    # Site-wide upload limit in bytes (0 = unlimited)
    max_upload_bytes: int = 0

    # Forum features
    forum_enable_quoted_replies: bool = True
    forum_enable_inline_editing: bool = True
    text_editors: str = "atto,tinymce,textarea"  # Comma-separated, first one wins

    # Client
    service_timeout_seconds: float = 30.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


# Global settings instance
settings = Settings()
