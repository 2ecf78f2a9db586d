from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.models import ContentType

PROJECT_ROOT = Path(__file__).resolve().parents[2]
PACKAGE_LOGGER_NAME = "immich_tv"


class RecentSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    months_back: int = Field(default=3, ge=1, le=120)


class SimilarSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    years_back: int = Field(default=10, ge=1, le=100)
    period_days: int = Field(default=30, ge=1, le=365)


class ExclusionSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    album_ids: list[str] = Field(default_factory=list)

    @field_validator("album_ids")
    @classmethod
    def validate_album_ids(cls, values: list[str]) -> list[str]:
        normalized: list[str] = []
        for raw_album_id in values:
            if not isinstance(raw_album_id, str):
                raise ValueError("exclusions.album_ids entries must be strings")
            album_id = raw_album_id.strip()
            if album_id:
                normalized.append(album_id)
        return list(dict.fromkeys(normalized))


class BrowseSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content_type: ContentType = ContentType.ALL
    page_size: int = Field(default=100, ge=1, le=1000)
    on_this_day_page_size: int = Field(default=1000, ge=1, le=5000)
    show_only_videos: bool = False

    @field_validator("content_type", mode="before")
    @classmethod
    def validate_content_type(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class BrowseYamlSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    recent: RecentSettings = Field(default_factory=RecentSettings)
    similar: SimilarSettings = Field(default_factory=SimilarSettings)
    exclusions: ExclusionSettings = Field(default_factory=ExclusionSettings)
    browse: BrowseSettings = Field(default_factory=BrowseSettings)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="IMMICH_TV_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host_name: str = "http://localhost:2283"
    api_key: SecretStr = SecretStr("")
    disable_ssl_verification: bool = False
    debug_mode: bool = False
    config_path: Path = Path("config/immich_tv.yaml")
    request_timeout_seconds: float = Field(default=30.0, gt=0, le=600)

    @field_validator("host_name")
    @classmethod
    def validate_host_name(cls, value: str) -> str:
        text = value.strip().rstrip("/")
        parsed = urlparse(text)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("host_name must be an absolute http(s) URL")
        return text


class AppSettings(BaseModel):
    env: EnvSettings
    yaml: BrowseYamlSettings
    project_root: Path
    config_path: Path

    @property
    def excluded_album_ids(self) -> list[str]:
        return self.yaml.exclusions.album_ids


def _resolve_project_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


def load_yaml_settings(path: Path) -> BrowseYamlSettings:
    if not path.exists():
        return BrowseYamlSettings()

    raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError("immich-tv config must be a YAML mapping/object at the top level")
    return BrowseYamlSettings.model_validate(raw_config)


def build_settings(env: EnvSettings) -> AppSettings:
    config_path = _resolve_project_path(env.config_path)
    return AppSettings(
        env=env,
        yaml=load_yaml_settings(config_path),
        project_root=PROJECT_ROOT,
        config_path=config_path,
    )


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    return build_settings(EnvSettings())


def configure_logging(debug_mode: bool) -> None:
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    package_logger.setLevel(logging.DEBUG if debug_mode else logging.INFO)
