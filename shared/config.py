"""
Shared configuration management for the Campus Access Layer.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CAMPUS_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    postgres_dsn: str = Field(default="postgres://localhost:5432/campus")

    # Membership store
    membership_backend: str = Field(default="memory", description="memory or postgres")
    strict_membership_lookup: bool = Field(default=False)
    membership_breaker_threshold: int = Field(default=5)
    membership_breaker_recovery_seconds: float = Field(default=30.0)

    # Entitlement cache
    entitlement_cache_enabled: bool = Field(default=False)
    entitlement_cache_ttl_seconds: int = Field(default=300)

    # Security
    jwt_secret: str = Field(default="local-dev-secret")
    jwt_algorithms: List[str] = Field(default_factory=lambda: ["HS256"])
    jwt_audience: Optional[str] = Field(default="authenticated")

    # Upgrade messaging
    billing_url: str = Field(default="/billing")


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
