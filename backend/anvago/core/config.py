"""
Core configuration module for the Anvago itinerary API.
Settings are loaded from environment variables and an optional .env file.
"""

from pydantic_settings import BaseSettings
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Sensible defaults for local development against SQLite.
    """

    # Application
    app_name: str = "Anvago API"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///./anvago.db"
    database_pool_size: int = 10
    database_max_overflow: int = 20
    database_pool_recycle: int = 1800  # Recycle connections after 30 min
    database_pool_pre_ping: bool = True
    seed_on_startup: bool = False

    # Rate limiting
    rate_limit_enabled: bool = True

    # API Configuration
    api_prefix: str = "/api/v1"
    api_host: str = "0.0.0.0"
    api_port: int = 3001
    api_workers: int = 1

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"

    # CORS
    cors_origins: list = ["http://localhost:5173", "http://127.0.0.1:5173"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    cors_allow_headers: list = ["Content-Type", "Accept", "Authorization", "X-API-Key", "X-Request-ID"]

    # Auth
    access_token_ttl_minutes: int = 60
    refresh_token_ttl_days: int = 30
    password_hash_iterations: int = 120_000
    password_min_length: int = 6

    # Admin API key for the admin dashboard; empty disables key access
    admin_api_key: str = ""

    # Matching
    default_city: str = "Danang"
    # "parity": empty query dimensions still count toward the denominator.
    # "applicable": only dimensions present in the query are counted.
    matcher_denominator_policy: str = "parity"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
