"""Application configuration using Pydantic BaseSettings."""

import logging

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Providers that can run without a credential
CREDENTIAL_FREE_PROVIDERS = frozenset({"pollinations"})


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database Configuration
    database_url: str = Field(alias="DATABASE_URL")
    db_pool_size: int = Field(default=20, alias="DB_POOL_SIZE")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS Configuration
    cors_origins: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")

    # Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    # Provider chain, highest priority first. The free provider goes last as
    # the guaranteed fallback.
    provider_priority: str = Field(
        default="openai,infip,replicate,huggingface,pollinations", alias="PROVIDER_PRIORITY"
    )
    provider_timeout_seconds: float = Field(default=120.0, alias="PROVIDER_TIMEOUT_SECONDS")
    download_timeout_seconds: float = Field(default=60.0, alias="DOWNLOAD_TIMEOUT_SECONDS")

    # Provider credentials
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    infip_api_key: str = Field(default="", alias="INFIP_API_KEY")
    huggingface_api_token: str = Field(default="", alias="HUGGINGFACE_API_TOKEN")
    huggingface_model: str = Field(
        default="black-forest-labs/FLUX.1-schnell", alias="HUGGINGFACE_MODEL"
    )
    replicate_api_token: str = Field(default="", alias="REPLICATE_API_TOKEN")
    replicate_model_version: str = Field(
        default="black-forest-labs/flux-schnell", alias="REPLICATE_MODEL_VERSION"
    )

    # Asset publishing ("local" or "pinata")
    asset_publisher: str = Field(default="local", alias="ASSET_PUBLISHER")
    asset_dir: str = Field(default="assets", alias="ASSET_DIR")
    asset_base_url: str = Field(default="http://localhost:8000/assets", alias="ASSET_BASE_URL")
    pinata_jwt: str = Field(default="", alias="PINATA_JWT")
    pinata_gateway: str = Field(default="gateway.pinata.cloud", alias="PINATA_GATEWAY")

    # Per-owner generation rate limit
    rate_limit_requests: int = Field(default=10, alias="RATE_LIMIT_REQUESTS", ge=1)
    rate_limit_window_seconds: int = Field(default=3600, alias="RATE_LIMIT_WINDOW_SECONDS", ge=1)

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def provider_priority_list(self) -> list[str]:
        """Parse provider chain from comma-separated string, preserving order."""
        return [p.strip().lower() for p in self.provider_priority.split(",") if p.strip()]

    def provider_credential(self, provider_id: str) -> str:
        """Return the configured credential for a provider ("" when unset)."""
        return {
            "openai": self.openai_api_key,
            "infip": self.infip_api_key,
            "huggingface": self.huggingface_api_token,
            "replicate": self.replicate_api_token,
        }.get(provider_id, "")

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate required configuration on startup.

        Fails fast with clear error messages if configuration is incomplete.
        Validation is skipped in test environments.
        """
        if self.app_env in ("test", "testing"):
            return self

        missing = []

        if self.asset_publisher not in ("local", "pinata"):
            missing.append(
                f"ASSET_PUBLISHER: must be 'local' or 'pinata' (got '{self.asset_publisher}')"
            )

        if self.asset_publisher == "pinata" and not self.pinata_jwt:
            missing.append("PINATA_JWT: Get your JWT token from https://pinata.cloud")

        usable = [
            p
            for p in self.provider_priority_list
            if p in CREDENTIAL_FREE_PROVIDERS or self.provider_credential(p)
        ]
        if not usable:
            missing.append(
                "PROVIDER_PRIORITY: no provider in the chain is usable. "
                "Add 'pollinations' or configure a provider API key."
            )

        if missing:
            error_msg = "CRITICAL: Missing required environment variables:\n\n" + "\n".join(
                f"  - {m}" for m in missing
            )
            error_msg += "\n\nThe application cannot start without these variables."
            raise ValueError(error_msg)

        return self


def configure_logging(settings: Settings) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development: Console output for human readability
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.app_env == "production"
        else structlog.dev.ConsoleRenderer()
    )
    processors = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.app_env == "production":
        processors += [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ]
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
