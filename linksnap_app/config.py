from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "LinkSnap"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Public origin used to build short links (URLCard)
    base_url: str = "http://127.0.0.1:8000"

    # Auth
    auth_url: str = "/auth"  # Where the dashboard gate sends anonymous visitors
    session_cookie_name: str = "access_token"

    # Backend (persistence + auth + remote functions)
    backend: str = "sqlalchemy"  # Options: "sqlalchemy", "supabase"
    database_url: str = "sqlite:///./linksnap.db"
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    request_timeout: float = 10.0  # Seconds per call to the hosted backend

    # Local generate_short_code()
    short_code_length: int = 6
    max_retries: int = 5

    # Cache settings (redirect lookups)
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 3600  # Cache TTL in seconds (1 hour), 0 disables the cache
    cache_fallback: str = "memory"  # Used when Redis is unreachable: "memory" or "null"

    # Change feed settings
    feed_backend: str = "redis"  # Options: "redis", "memory"
    feed_channel: str = "urls-changes"

    # QR codes
    qr_size: int = 256  # Target edge length in pixels
    qr_border: int = 4  # Quiet zone in modules

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
