from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core_config.constants import (
    DEFAULT_TANDEM_BASE_URL,
    TIMEOUT_SCAN_MS,
    TIMEOUT_SCHEMA_MS,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    service_log_level: str = Field(default="INFO", alias="SERVICE_LOG_LEVEL")

    # Store access
    tandem_base_url: str = Field(default=DEFAULT_TANDEM_BASE_URL, alias="TANDEM_BASE_URL")
    tandem_region: Optional[str] = Field(default=None, alias="TANDEM_REGION")
    tandem_token: Optional[str] = Field(default=None, alias="TANDEM_TOKEN")

    # HTTP behaviour
    http_retry: int = Field(default=1, alias="HTTP_RETRY")
    timeout_scan_ms: int = Field(default=TIMEOUT_SCAN_MS, alias="TIMEOUT_SCAN_MS")
    timeout_schema_ms: int = Field(default=TIMEOUT_SCHEMA_MS, alias="TIMEOUT_SCHEMA_MS")

    @property
    def base_url(self) -> str:  # noqa: D401
        """Store base URL without a trailing slash."""
        return (self.tandem_base_url or DEFAULT_TANDEM_BASE_URL).rstrip("/")


def get_settings() -> "Settings":
    return Settings()  # type: ignore
