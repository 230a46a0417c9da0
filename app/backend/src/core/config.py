"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    environment: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    database_url: str = Field(
        default="sqlite:///./invoicing.db", alias="DATABASE_URL"
    )
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_jwt_secret: str | None = Field(
        default=None, alias="SUPABASE_JWT_SECRET"
    )
    jwt_audience: str = Field(default="authenticated", alias="JWT_AUDIENCE")
    allowed_origins_raw: str = Field(
        default="http://localhost:4200", alias="ALLOWED_ORIGINS"
    )
    default_invoice_number_format: str = Field(
        default="FV/{YYYY}/{NNN}", alias="DEFAULT_INVOICE_NUMBER_FORMAT"
    )
    default_currency: str = Field(default="PLN", alias="DEFAULT_CURRENCY")
    default_item_unit: str = Field(default="szt.", alias="DEFAULT_ITEM_UNIT")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    def get(self, key: str, default: object | None = None) -> object | None:
        """Dictionary-style access to configuration values."""

        return self.model_dump(by_alias=True).get(key, default)

    @property
    def allowed_origins(self) -> list[str]:
        """Return the configured CORS origins as a list."""

        return [
            origin.strip()
            for origin in self.allowed_origins_raw.split(",")
            if origin.strip()
        ]

    @property
    def is_development(self) -> bool:
        """Return ``True`` when running in a local development environment."""

        return self.environment.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
