from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    tracing_enabled: bool = True

    # Printful
    printful_api_key: str = ""
    printful_store_id: str | None = None
    printful_base_url: str = "https://api.printful.com"

    # DSers
    dsers_api_key: str = ""
    dsers_base_url: str = "https://api.dsers.com/v1"

    # Spocket
    spocket_api_key: str = ""
    spocket_base_url: str = "https://api.spocket.co"

    # Provider routing
    dropship_provider_priority: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["printful", "dsers", "spocket"]
    )

    @field_validator("dropship_provider_priority", mode="before")
    @classmethod
    def _parse_priority_list(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip().lower() for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(item).strip().lower() for item in value if str(item).strip()]
        return []

    # Vendor call resilience
    dropship_request_timeout_seconds: float = 10.0
    dropship_read_retry_attempts: int = 2
    dropship_retry_backoff_seconds: float = 0.5
    dropship_breaker_failure_threshold: int = 5
    dropship_breaker_reset_seconds: float = 30.0


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
