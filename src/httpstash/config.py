"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Constructor arguments
  2. Environment variables  (HTTPSTASH__CACHE__ROOT=/var/cache/httpstash)
  3. httpstash.yaml         (searched in cwd, then the user config dir)
  4. Hardcoded defaults

The config file is optional and every field has a default. Embedding
programs are free to skip Settings entirely and call ``Cache.open()``
with explicit arguments.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from httpstash import __version__

_DEFAULT_CACHE_ROOT = platformdirs.user_cache_dir("httpstash")
_DEFAULT_USER_AGENT = f"httpstash/{__version__}"


def _find_config_file() -> str | None:
    """Return the path of the first httpstash.yaml found, or None."""
    candidates = [
        Path("httpstash.yaml"),
        Path(platformdirs.user_config_dir("httpstash")) / "httpstash.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class CacheSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    root: str = _DEFAULT_CACHE_ROOT


class FetcherSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeout_seconds: float = Field(default=30.0, gt=0)
    max_redirects: int = Field(default=10, ge=0)
    user_agent: str = _DEFAULT_USER_AGENT


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "text"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: HTTPSTASH__FETCHER__TIMEOUT_SECONDS=5
        env_prefix="HTTPSTASH__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
        extra="forbid",
    )

    cache: CacheSettings = CacheSettings()
    fetcher: FetcherSettings = FetcherSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets are not read
        )
