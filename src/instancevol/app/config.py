"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiConfig(BaseSettings):
    """Instance API connection configuration.

    Credentials and defaults follow the provider's SCW_ environment names so
    that the same shell environment works for the CLI and this service.
    """

    model_config = SettingsConfigDict(env_prefix="SCW_")

    api_url: str = Field(default="https://api.scaleway.com")
    secret_key: str = Field(default="")
    default_zone: str = Field(default="fr-par-1")
    default_project_id: str | None = Field(default=None)
    timeout: float = Field(default=30.0)  # seconds (per HTTP call)


class VolumeConfig(BaseSettings):
    """Volume lifecycle timing configuration."""

    model_config = SettingsConfigDict(env_prefix="VOLUME_")

    wait_retry_interval: float = Field(default=5.0)  # seconds between polls
    wait_timeout: float = Field(default=300.0)  # seconds (5 minutes)
    delete_timeout: float = Field(default=600.0)  # seconds (10 minutes)
    name_prefix: str = Field(default="tf-vol")


class RetryConfig(BaseSettings):
    """Backoff for transient transport errors on read-only calls."""

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_retries: int = Field(default=3)
    base_delay: float = Field(default=1.0)  # seconds
    max_delay: float = Field(default=30.0)  # seconds


class ServerConfig(BaseSettings):
    """HTTP server bind configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Standard fields added to all logs:
    - schema_version: Log schema version for backwards compatibility
    - service: Service name (instancevol)

    Rate limiting:
    - Prevents log storms from repeated messages (polling loops)
    - ERROR logs bypass rate limiting (always logged)
    """

    model_config = SettingsConfigDict(env_prefix="LOGGING_")

    level: str = Field(default="INFO")
    schema_version: str = Field(default="1.0")
    slow_threshold_ms: float = Field(default=1000.0)
    rate_limit_per_minute: int = Field(default=100)
    service_name: str = Field(default="instancevol")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="INSTANCEVOL_",
        env_nested_delimiter="__",
    )

    api: ApiConfig = Field(default_factory=ApiConfig)
    volume: VolumeConfig = Field(default_factory=VolumeConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache
def get_settings() -> Settings:
    return Settings()
