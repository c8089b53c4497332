"""Configuration for hashgallery.

Settings are read from a YAML file (``config.yaml`` by default, or the path in
``HASHGALLERY_CONFIG``) and validated with Pydantic Settings. Environment
variables with the ``HASHGALLERY_`` prefix fill in top-level keys the file
leaves out; nested values use ``__``, e.g. ``HASHGALLERY_DATABASE__HOST``.

Example file::

    database:
      user: gallery
      password: secret
      dbname: gallery
      host: localhost
      port: 5432
      sslmode: disable
    max_upload_size: 41943040
"""

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from errors import ConfigError

APP_DIR = Path(__file__).resolve().parent
DEFAULT_CONFIG_PATH = Path("config.yaml")
CONFIG_ENV_VAR = "HASHGALLERY_CONFIG"


class DatabaseSettings(BaseModel):
    """Connection parameters for the metadata database."""

    user: str = "postgres"
    password: str = ""
    dbname: str = "images"
    host: str = "localhost"
    port: int = 5432
    sslmode: str = "disable"
    driver: str = "postgresql+psycopg2"
    # Full SQLAlchemy URL; overrides every other field when set.
    url: Optional[str] = None

    def sqlalchemy_url(self) -> URL | str:
        if self.url:
            return self.url
        return URL.create(
            self.driver,
            username=self.user,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.dbname,
            query={"sslmode": self.sslmode},
        )


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="HASHGALLERY_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    upload_dir: Path = Path("image")
    thumbnail_dir: Path = Path("thumb")
    templates_dir: Path = APP_DIR / "templates"
    static_dir: Path = APP_DIR / "static"

    max_upload_size: int = Field(default=40 * 1024 * 1024, gt=0)
    thumbnail_size: int = Field(default=120, ge=1)
    gallery_limit: int = Field(default=100, ge=1, le=500)
    cleanup_failed_uploads: bool = False

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value


def config_path() -> Path:
    """Return the config file path, honouring ``HASHGALLERY_CONFIG``."""
    return Path(os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load and validate settings from a YAML file.

    Raises:
        ConfigError: the file is missing, unreadable, not valid YAML, not a
            mapping, or fails validation.
    """
    path = Path(path) if path is not None else config_path()
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"error reading config file {path}: {exc}") from exc

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"error parsing config file {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"error parsing config file {path}: expected a mapping")

    try:
        return Settings(**data)
    except PydanticValidationError as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc
