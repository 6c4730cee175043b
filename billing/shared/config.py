"""Shared configuration management for the billing engine.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_DEFAULT_GST_RATE=12
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="billing-engine",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # Tax configuration
    default_gst_rate: Decimal = Field(
        default=Decimal("18"),
        ge=0,
        description="Company-wide GST rate (percent) used when no state rate matches",
    )
    company_state: str = Field(
        default="",
        description="State the company is registered in (display only)",
    )

    # Audit configuration
    audit_keep_all_messages: bool = Field(
        default=False,
        description=(
            "Keep every matched change category in AuditEntry.all_messages "
            "instead of only the prioritized one"
        ),
    )

    # Batch evaluation
    max_batch_size: int = Field(
        default=500,
        gt=0,
        description="Maximum number of bills accepted by one batch evaluation request",
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
