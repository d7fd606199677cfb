"""
Shared configuration management for the Content Protection layer.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROTECTION_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Redirects
    fallback_redirect_url: str = Field(default="http://localhost:8013/")

    # Hierarchy
    max_ancestor_depth: int = Field(default=64, ge=1)
    hierarchical_types: List[str] = Field(default_factory=lambda: ["page"])
    documents_file: Optional[str] = Field(default=None)

    # Settings store
    settings_backend: str = Field(default="memory")
    redis_url: str = Field(default="redis://localhost:6379/0")
    settings_key_prefix: str = Field(default="protection:settings")

    # Commerce service backing the entitlement oracle
    commerce_service_url: Optional[str] = Field(default=None)
    commerce_timeout_seconds: float = Field(default=5.0)
    commerce_retry_attempts: int = Field(default=3, ge=1)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
