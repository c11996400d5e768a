"""
Bridge Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Invalid config is rejected at startup.
"""

import sys
from enum import Enum

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from storekit_bridge.exceptions import ConfigurationError


class BufferingPolicy(str, Enum):
    """When an event family becomes dispatchable."""

    UNTIL_READY = "until_ready"  # engine setup succeeded
    UNTIL_LISTENER = "until_listener"  # ... and a consumer is registered for the family


class Settings(BaseSettings):
    """Bridge settings loaded from environment variables."""

    # Service identity
    service_name: str = "storekit-bridge"
    service_version: str = "0.1.0"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability
    metrics_enabled: bool = True
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True

    # Event buffering
    buffering_policy: BufferingPolicy = BufferingPolicy.UNTIL_READY
    watchdog_interval_seconds: float = 10.0

    # Persistence
    transaction_index_key: str = "sk_transactionForProduct"
    legacy_receipt_key: str = "sk_receiptForTransaction"
    storage_path: str | None = None  # JSON file for the key-value store

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate configuration at startup.

        A bridge with a broken watchdog interval or unknown log format
        would silently misbehave, so refuse to build one.
        """
        errors: list[str] = []

        if self.watchdog_interval_seconds <= 0:
            errors.append(
                f"WATCHDOG_INTERVAL_SECONDS must be positive, got: {self.watchdog_interval_seconds}"
            )
        if self.log_format not in ("json", "console"):
            errors.append(f"LOG_FORMAT must be 'json' or 'console', got: {self.log_format}")
        if not self.transaction_index_key:
            errors.append("TRANSACTION_INDEX_KEY cannot be empty")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CRITICAL CONFIGURATION ERROR - BRIDGE CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get bridge settings instance."""
    return settings
