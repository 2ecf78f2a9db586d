from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EXCLUDED_TAG_NAME = "exclude_immich_tv"


class ContentType(str, Enum):
    ALL = "ALL"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class PhotosOrder(str, Enum):
    NEWEST_OLDEST = "NEWEST_OLDEST"
    OLDEST_NEWEST = "OLDEST_NEWEST"

    @property
    def wire_value(self) -> str:
        return "asc" if self is PhotosOrder.OLDEST_NEWEST else "desc"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Tag(_WireModel):
    id: str | None = None
    name: str


class ExifInfo(_WireModel):
    date_time_original: datetime | None = None
    city: str | None = None
    country: str | None = None


class Asset(_WireModel):
    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str
    type: str = "IMAGE"
    original_file_name: str | None = None
    file_created_at: datetime | None = None
    file_modified_at: datetime | None = None
    exif_info: ExifInfo | None = None
    is_favorite: bool = False
    tags: list[Tag] | None = None
    album_name: str | None = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("asset id must not be empty")
        return text

    @property
    def capture_date(self) -> datetime | None:
        if self.exif_info is not None and self.exif_info.date_time_original is not None:
            return self.exif_info.date_time_original
        return self.file_modified_at

    @property
    def is_video(self) -> bool:
        return self.type.upper() == "VIDEO"

    def has_tag(self, name: str) -> bool:
        return any(tag.name == name for tag in self.tags or [])


class Bucket(_WireModel):
    time_bucket: str
    count: int = Field(default=0, ge=0)

    @property
    def year(self) -> str:
        prefix = self.time_bucket[:4]
        return prefix if len(prefix) == 4 and prefix.isdigit() else "Unknown"


class Album(_WireModel):
    id: str
    album_name: str = ""
    shared: bool = False
    asset_count: int = 0


class AlbumDetails(Album):
    assets: list[Asset] = Field(default_factory=list)


class Person(_WireModel):
    id: str
    name: str | None = None


class SearchRequest(_WireModel):
    page: int = Field(default=1, ge=1)
    size: int = Field(default=100, ge=1)
    order: str = "desc"
    type: str | None = None
    person_ids: list[str] = Field(default_factory=list)
    taken_before: str | None = None
    taken_after: str | None = None
    with_exif: bool = True
    is_favorite: bool | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class FavoriteChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset_id: str
    is_favorite: bool
