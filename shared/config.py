"""
Shared configuration management for the MOV Event Platform.
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings.

    Values are read once from the environment (``MOV_`` prefix) or a ``.env``
    file and are frozen afterwards; components receive the instance
    explicitly instead of reading globals.
    """

    model_config = SettingsConfigDict(
        env_prefix="MOV_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Credentials
    jwt_secret: str = Field(default="change-me-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_in_seconds: int = Field(default=86400, ge=1)

    # Backend services
    auth_service_url: str = Field(default="http://localhost:3001")
    event_service_url: str = Field(default="http://localhost:3002")
    enrollment_service_url: Optional[str] = Field(default=None)
    notification_service_url: Optional[str] = Field(default=None)

    # Forwarding
    forward_timeout_seconds: float = Field(default=10.0, gt=0)

    # Rate limiting
    redis_url: str = Field(default="redis://localhost:6379/0")
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_window_seconds: int = Field(default=900, ge=1)
    rate_limit_max_requests: int = Field(default=100, ge=1)

    def optional_backends(self) -> Dict[str, str]:
        """Return configured backends that only some deployments run."""
        backends = {}
        if self.enrollment_service_url:
            backends["enrollments"] = self.enrollment_service_url
        if self.notification_service_url:
            backends["notifications"] = self.notification_service_url
        return backends


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
