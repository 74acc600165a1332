import os
from typing import Optional
from urllib.parse import quote_plus
from pydantic import ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .errors import ConfigurationError

class Settings(BaseSettings):
    # Kodi (source); the MYSQL fields are required unless KODI_DATABASE_URL is set
    KODI_MYSQL_HOST: Optional[str] = None
    KODI_MYSQL_PORT: int = 3306
    KODI_MYSQL_USER: Optional[str] = None
    KODI_MYSQL_PASS: Optional[str] = None
    KODI_MYSQL_DATABASE: Optional[str] = None
    KODI_DATABASE_URL: Optional[str] = None

    # Jellyfin (target)
    JELLYFIN_SQLITE_PATH: str
    JELLYFIN_DATABASE_URL: Optional[str] = None
    JELLYFIN_USER_ID: int = 1

    # System
    LOG_LEVEL: str = "INFO"
    DRY_RUN: bool = False
    DB_CONNECT_TIMEOUT_SECONDS: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @model_validator(mode="after")
    def require_kodi_connection(self) -> "Settings":
        if self.KODI_DATABASE_URL:
            return self
        missing = [
            name for name in ("KODI_MYSQL_HOST", "KODI_MYSQL_USER", "KODI_MYSQL_PASS", "KODI_MYSQL_DATABASE")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"{', '.join(missing)} required when KODI_DATABASE_URL is not set")
        return self

    @property
    def kodi_url(self) -> str:
        if self.KODI_DATABASE_URL:
            return self.KODI_DATABASE_URL
        return (
            f"mysql+aiomysql://{quote_plus(self.KODI_MYSQL_USER)}:{quote_plus(self.KODI_MYSQL_PASS)}"
            f"@{self.KODI_MYSQL_HOST}:{self.KODI_MYSQL_PORT}/{self.KODI_MYSQL_DATABASE}"
        )

    @property
    def jellyfin_url(self) -> str:
        if self.JELLYFIN_DATABASE_URL:
            return self.JELLYFIN_DATABASE_URL
        return f"sqlite+aiosqlite:///{self.JELLYFIN_SQLITE_PATH}"


def load_settings(**overrides) -> Settings:
    """
    Reads settings from the environment (and .env), failing with ConfigurationError
    before any store connection is attempted.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        problems = []
        for err in e.errors():
            loc = ".".join(str(p) for p in err["loc"])
            problems.append(f"{loc}: {err['msg']}" if loc else err["msg"])
        raise ConfigurationError(f"Invalid or missing configuration: {'; '.join(problems)}") from e

    for name, url in (("Kodi", settings.kodi_url), ("Jellyfin", settings.jellyfin_url)):
        try:
            make_url(url)
        except ArgumentError as e:
            raise ConfigurationError(f"Malformed {name} database URL: {e}") from e

    if not settings.JELLYFIN_DATABASE_URL and not os.path.isfile(settings.JELLYFIN_SQLITE_PATH):
        raise ConfigurationError(f"Jellyfin database not found at {settings.JELLYFIN_SQLITE_PATH}")

    return settings
