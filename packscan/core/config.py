import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional, List

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        validate_assignment=True
    )

    # App settings
    app_name: str = Field(default="PackScan", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    reload: bool = Field(default=False, description="Auto-reload on code changes")

    # CORS settings, comma-separated or "*"
    cors_origins: str = Field(default="*", description="Allowed CORS origins")
    cors_allow_methods: str = Field(default="*", description="Allowed CORS methods")
    cors_allow_headers: str = Field(
        default="authorization, x-client-info, apikey, content-type",
        description="Allowed CORS headers"
    )

    # Logging settings
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )
    log_json: bool = Field(default=True, description="Render structured logs as JSON")

    # AI gateway settings
    ai_gateway_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ai_gateway_api_key", "AI_GATEWAY_API_KEY", "LOVABLE_API_KEY"),
        description="API key for the AI gateway"
    )
    ai_gateway_url: str = Field(
        default="https://ai.gateway.lovable.dev/v1",
        description="Base URL of the OpenAI-compatible AI gateway"
    )
    analysis_model: str = Field(default="google/gemini-2.5-flash", description="Model used for material analysis")
    image_model: str = Field(
        default="google/gemini-2.5-flash-image-preview",
        description="Model used for chemical structure diagrams"
    )
    generate_structure_images: bool = Field(
        default=True,
        description="Request a structure diagram for every identified material"
    )
    http_timeout: float = Field(default=60.0, description="HTTP timeout in seconds")

    # Persistence settings
    database_url: str = Field(
        default="sqlite+aiosqlite:///./packscan.db",
        description="SQLAlchemy async database URL"
    )
    database_echo: bool = Field(default=False, description="Echo SQL queries")
    storage_dir: str = Field(default="storage", description="Root directory for object storage")
    storage_bucket: str = Field(default="analyses", description="Bucket holding analysed images")
    signed_url_ttl: int = Field(default=3600, description="Signed image URL lifetime in seconds")

    # Security settings
    secret_key: str = Field(
        default="your-secret-key-change-this-in-production",
        description="Secret key for access tokens and signed URLs"
    )
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        description="Access token expiration time in minutes"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("cors_origins", "cors_allow_methods", "cors_allow_headers", mode="before")
    @classmethod
    def parse_cors_value(cls, v):
        """Accept lists as well as comma-separated strings."""
        if isinstance(v, (list, tuple)):
            if "*" in v:
                return "*"
            return ",".join(str(item) for item in v)
        if isinstance(v, str):
            return v.strip().strip("[]").replace('"', "").replace("'", "") or "*"
        return "*"

    @field_validator("ai_gateway_api_key")
    @classmethod
    def blank_key_is_missing(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    @staticmethod
    def _split(value: str) -> List[str]:
        if value.strip() == "*":
            return ["*"]
        return [item.strip() for item in value.split(",") if item.strip()]

    def get_cors_origins_list(self) -> List[str]:
        """Get CORS origins as list for FastAPI."""
        return self._split(self.cors_origins)

    def get_cors_methods_list(self) -> List[str]:
        """Get CORS methods as list for FastAPI."""
        return self._split(self.cors_allow_methods)

    def get_cors_headers_list(self) -> List[str]:
        """Get CORS headers as list for FastAPI."""
        return self._split(self.cors_allow_headers)

    @property
    def bucket_path(self) -> Path:
        """Directory backing the image bucket."""
        return Path(self.storage_dir) / self.storage_bucket

    def setup_logging(self) -> None:
        """Setup application logging."""
        logging.basicConfig(
            level=getattr(logging, self.log_level),
            format=self.log_format,
            handlers=[logging.StreamHandler(sys.stdout)],
            force=True
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
