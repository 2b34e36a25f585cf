from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./fieldforce.db"
    database_echo: bool = False

    # Logging
    log_level: str = "INFO"
    log_redacted_fields: list[str] = Field(
        default_factory=lambda: ["phone_number", "delivery_phone", "delivery_address", "delivery_name"]
    )

    # Internal API security (service-to-service observability reads)
    internal_api_key: str = ""

    # Tracing
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: list[str] = Field(default_factory=list)
    tracing_console_export: bool = False

    @field_validator("otel_exporter_otlp_headers", "log_redacted_fields", mode="before")
    @classmethod
    def _parse_csv_list(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(item).strip() for item in value if str(item).strip()]
        return []

    # Role gates (see services.auth.roles.ROLE_HIERARCHY)
    rewards_read_min_role: str = "senior-executive"
    rewards_review_min_role: str = "executive"
    ledger_adjust_min_role: str = "senior-manager"

    # Listing windows
    rewards_list_default_limit: int = 25
    rewards_list_max_limit: int = 100


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
