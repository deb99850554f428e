"""Application configuration using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from src.constants import (
    DEFAULT_SEARCH_LANGUAGE,
    FACEBOOK_API_TIMEOUT_SECONDS,
    SEARCH_TIMEOUT_SECONDS,
    WIKIDATA_SPARQL_URL,
)


class Settings(BaseSettings):
    """Application settings loaded from a JSON file or environment variables."""

    model_config = SettingsConfigDict(
        # Load .env first, then .env.local (for local/test overrides)
        # Later files override earlier ones, so .env.local takes precedence
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        # Deployed instances may ship their configuration as a file instead
        json_file="config/production.json",
        json_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Facebook Configuration
    # Aliases accept the camelCase keys of config/production.json and the
    # MESSENGER_* environment variable names
    facebook_app_secret: str = Field(
        ...,
        validation_alias=AliasChoices(
            "facebook_app_secret", "appSecret", "messenger_app_secret"
        ),
        description="Facebook App secret used to verify webhook signatures",
    )
    facebook_page_access_token: str = Field(
        ...,
        validation_alias=AliasChoices(
            "facebook_page_access_token",
            "pageAccessToken",
            "messenger_page_access_token",
        ),
        description="Facebook Page access token",
    )
    facebook_verify_token: str = Field(
        ...,
        validation_alias=AliasChoices(
            "facebook_verify_token", "validationToken", "messenger_validation_token"
        ),
        description="Webhook verification token",
    )

    # Server Configuration
    server_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("server_url", "serverURL"),
        description="Public base URL of this server (used for relative image URLs)",
    )
    path_prefix: str = Field(
        default="",
        validation_alias=AliasChoices("path_prefix", "pathPrefix"),
        description="Path prefix for the webhook and static files",
    )
    port: int = Field(default=8000, description="Port to listen on")
    static_dir: str = Field(
        default="public", description="Directory of static files served at the prefix"
    )

    # Outbound behaviour
    messenger_mock_mode: bool = Field(
        default=False,
        description="Log outbound messages instead of calling the Send API",
    )

    # Search backend
    wikidata_sparql_url: str = Field(
        default=WIKIDATA_SPARQL_URL, description="Wikidata SPARQL endpoint"
    )
    search_language: str = Field(
        default=DEFAULT_SEARCH_LANGUAGE,
        description="Language for labels and entity search",
    )

    # Environment
    env: Literal["local", "railway", "prod"] = Field(
        default="local", description="Current environment"
    )
    log_level: str = Field(default="INFO", description="Python logging level")

    # Sentry Configuration
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN for error tracking (optional)"
    )
    sentry_traces_sample_rate: float = Field(
        default=1.0, description="Sentry traces sample rate (0.0 to 1.0)"
    )

    # Logfire Configuration
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token for observability"
    )

    # ==========================================================================
    # Timeout Configuration
    # ==========================================================================
    # Defaults are sourced from src/constants.py.

    facebook_api_timeout_seconds: float = Field(
        default=FACEBOOK_API_TIMEOUT_SECONDS,
        description="Timeout for Facebook Graph API calls (seconds)",
    )
    search_timeout_seconds: float = Field(
        default=SEARCH_TIMEOUT_SECONDS,
        description="Timeout for search backend queries (seconds)",
    )

    @field_validator("path_prefix")
    @classmethod
    def _normalize_path_prefix(cls, value: str) -> str:
        """Keep the prefix in '/segment' form without trailing slash."""
        value = value.strip().rstrip("/")
        if value and not value.startswith("/"):
            value = f"/{value}"
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # A production config file wins over the environment
        return (
            init_settings,
            JsonConfigSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @property
    def public_base_url(self) -> str | None:
        """Server URL joined with the path prefix, if a server URL is set."""
        if not self.server_url:
            return None
        return f"{self.server_url.rstrip('/')}{self.path_prefix}"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
