"""Exporter configuration using pydantic-settings.

This module defines the ExporterSettings class that reads configuration
from environment variables with the GHA_EXPORTER_ prefix. Only the webhook
secret is required; the GitHub API token and targets are needed only when
one of the polling exporters is enabled.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExporterSettings(BaseSettings):
    """GitHub Actions exporter configuration from environment variables.

    All environment variables are prefixed with GHA_EXPORTER_
    (e.g., GHA_EXPORTER_WEBHOOK_SECRET).

    Required fields (must be set via environment variables):
    - webhook_secret: Shared secret used to sign webhook deliveries
    """

    model_config = SettingsConfigDict(
        env_prefix="GHA_EXPORTER_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    # Secret for validating X-Hub-Signature on webhook deliveries
    webhook_secret: str

    # GitHub API token used by the billing, runners and queue pollers
    github_api_token: str = ""

    # Base URL for GitHub API (supports GitHub Enterprise Server)
    github_api_url: str = "https://api.github.com"

    # Poller targets
    github_org: str = ""
    github_user: str = ""
    github_enterprise: str = ""
    # Repository for the queued workflow poller, "owner/name" or "name"
    github_repo: str = ""

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"
    port: int = 9101
    metrics_path: str = "/metrics"
    webhook_path: str = "/gh_event"

    # -------------------------------------------------------------------------
    # Poller Configuration
    # -------------------------------------------------------------------------
    billing_metrics_enabled: bool = False
    billing_poll_seconds: int = 5

    runners_metrics_enabled: bool = False
    runners_poll_seconds: int = 30

    workflow_queue_metrics_enabled: bool = False
    workflow_queue_poll_seconds: int = 30

    # -------------------------------------------------------------------------
    # Job Correlation Cache
    # -------------------------------------------------------------------------
    # How long a queued job snapshot is kept waiting for its in_progress event
    job_cache_ttl_seconds: int = 24 * 60 * 60

    # How often expired snapshots are purged
    job_cache_sweep_seconds: int = 30 * 60

    # Seconds to wait for in-flight webhook processing on shutdown
    shutdown_grace_seconds: float = 10.0

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: str = "INFO"
    log_format: str = "json"

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("webhook_secret")
    @classmethod
    def validate_webhook_secret(cls, v: str) -> str:
        """Validate that webhook secret is not empty."""
        if not v or not v.strip():
            raise ValueError("webhook_secret cannot be empty")
        return v

    @field_validator("github_api_url")
    @classmethod
    def validate_github_api_url(cls, v: str) -> str:
        """Validate that the GitHub API URL is a valid URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("github_api_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("metrics_path", "webhook_path")
    @classmethod
    def validate_route_path(cls, v: str) -> str:
        """Validate that route paths are absolute."""
        if not v.startswith("/"):
            raise ValueError("route paths must start with '/'")
        return v

    @field_validator(
        "billing_poll_seconds",
        "runners_poll_seconds",
        "workflow_queue_poll_seconds",
        "job_cache_ttl_seconds",
        "job_cache_sweep_seconds",
    )
    @classmethod
    def validate_positive_interval(cls, v: int) -> int:
        """Validate that intervals are positive."""
        if v < 1:
            raise ValueError("intervals must be at least 1 second")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate the log renderer name."""
        fmt = v.lower()
        if fmt not in {"json", "console"}:
            raise ValueError("log_format must be 'json' or 'console'")
        return fmt


def get_settings() -> ExporterSettings:
    """Create and return ExporterSettings instance.

    Returns:
        ExporterSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return ExporterSettings()
