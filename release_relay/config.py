"""Release relay configuration.

All settings can be overridden via RELAY_* environment variables or a .env
file. The webhook secret is also read from GITHUB_WEBHOOK_SECRET and the port
from PORT, the names the relay has historically been deployed with.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

from pydantic import AliasChoices, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from release_relay import __version__
from release_relay.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_ARCHITECTURES = ["arm64", "amd64"]


class Settings(BaseSettings):
    """Environment-driven settings for the relay."""

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Webhook authentication (required)
    webhook_secret: SecretStr = Field(
        validation_alias=AliasChoices("webhook_secret", "RELAY_WEBHOOK_SECRET", "GITHUB_WEBHOOK_SECRET"),
    )

    # Metadata store
    store_location: Path = Path("metadata.json")

    # Resolution policy
    required_architectures: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_ARCHITECTURES)
    )
    enforce_version_parity: bool = True

    # HTTP server
    host: str = "0.0.0.0"
    port: int = Field(default=8080, validation_alias=AliasChoices("port", "RELAY_PORT", "PORT"))
    log_level: str = "INFO"
    cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])
    rate_limit: str = "20/second"
    rate_limit_enabled: bool = True
    service_version: str = __version__

    @field_validator("webhook_secret")
    @classmethod
    def _secret_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("webhook secret must not be empty")
        return value

    @field_validator("required_architectures", "cors_origins", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.split(",")
        return value

    @field_validator("required_architectures")
    @classmethod
    def _normalize_architectures(cls, value: list[str]) -> list[str]:
        archs = list(dict.fromkeys(a.strip().lower() for a in value if a.strip()))
        if not archs:
            raise ValueError("at least one architecture is required")
        return archs

    @field_validator("cors_origins")
    @classmethod
    def _strip_origins(cls, value: list[str]) -> list[str]:
        return [o.strip() for o in value if o.strip()]

    @property
    def secret_bytes(self) -> bytes:
        """Webhook secret as the HMAC key."""
        return self.webhook_secret.get_secret_value().encode("utf-8")


def load_settings(**overrides: Any) -> Settings:
    """Load settings, turning validation failures into a fatal ConfigError.

    Error messages name the offending fields only, never their values.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) or "settings" for err in e.errors()})
        logger.critical("Invalid relay configuration: %s", ", ".join(fields))
        raise ConfigError(f"Invalid configuration for: {', '.join(fields)}") from e
