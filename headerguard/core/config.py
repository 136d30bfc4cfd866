"""
Application configuration management using Pydantic Settings.
Loads from environment variables with type validation and defaults.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Central configuration for the server and its header-hardening toggles.
    All settings are loaded from environment variables with type validation.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --- Application ---
    APP_NAME: str = "headerguard"
    APP_VERSION: str = "0.1.0"
    APP_ENV: str = Field(default="development")
    API_HOST: str = "0.0.0.0"
    PORT: int = Field(default=3000, ge=0, le=65535)
    API_PREFIX: str = "/_api"
    STATIC_DIR: Path = PACKAGE_DIR / "public"
    VIEWS_DIR: Path = PACKAGE_DIR / "views"

    # --- Header hardening ---
    HIDE_POWERED_BY_AS: Optional[str] = None
    FRAMEGUARD_ACTION: str = "deny"
    XSS_REPORT_URI: Optional[str] = None
    HSTS_ENABLED: bool = False
    HSTS_MAX_AGE_SECONDS: int = 90 * 24 * 60 * 60
    HSTS_FORCE: bool = True
    HSTS_INCLUDE_SUBDOMAINS: bool = True
    HSTS_PRELOAD: bool = False
    DNS_PREFETCH_ALLOW: bool = False
    NOCACHE_NO_ETAG: bool = False
    CSP_DEFAULT_SRC: Annotated[List[str], NoDecode] = ["'self'"]
    CSP_SCRIPT_SRC: Annotated[List[str], NoDecode] = ["'self'", "trusted-cdn.com"]
    CSP_REPORT_ONLY: bool = False

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    @field_validator("CSP_DEFAULT_SRC", "CSP_SCRIPT_SRC", mode="before")
    @classmethod
    def parse_source_list(cls, v: str | list) -> List[str]:
        if isinstance(v, str):
            try:
                return json.loads(v)
            except ValueError:
                return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached accessor for application settings."""
    return Settings()


settings: Settings = get_settings()
