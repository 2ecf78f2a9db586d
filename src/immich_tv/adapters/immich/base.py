from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from ...domain.folders import Folder
from ...domain.models import Album, AlbumDetails, Asset, Bucket, ContentType, Person, PhotosOrder
from ...domain.result import Result


class ImmichAdapterError(RuntimeError):
    """Raised when an Immich client cannot be built from the configured connection."""


class PhotoServerAdapter(Protocol):
    async def list_assets(
        self,
        page: int,
        page_size: int,
        *,
        random: bool = False,
        order: str = "desc",
        person_ids: Sequence[str] = (),
        from_date: datetime | None = None,
        end_date: datetime | None = None,
        content_type: ContentType = ContentType.ALL,
        is_favorite: bool | None = None,
    ) -> Result[list[Asset]]:
        """Search assets with the tag and album exclusion filters applied."""

    async def get_asset(self, asset_id: str) -> Result[Asset]:
        """Fetch one asset by identifier."""

    async def get_oldest_asset(self) -> Result[Asset]:
        """Return the earliest asset known to the server."""

    async def list_albums(self) -> Result[list[Album]]:
        """List owned albums followed by shared albums."""

    async def get_album(self, album_id: str) -> Result[AlbumDetails]:
        """Fetch one album with its assets."""

    async def list_people(self) -> Result[list[Person]]:
        """List named people."""

    async def list_buckets(self, album_id: str | None, order: PhotosOrder) -> Result[list[Bucket]]:
        """List the timeline's month buckets."""

    async def get_assets_for_bucket(
        self,
        album_id: str | None,
        bucket_key: str,
        order: PhotosOrder,
    ) -> Result[list[Asset]]:
        """Fetch every asset in one timeline bucket."""

    async def list_folders(self) -> Result[Folder]:
        """Build the folder tree from the server's unique paths."""

    async def list_assets_for_folder(self, path: str) -> Result[list[Asset]]:
        """List the assets stored under one folder path."""

    async def toggle_favorite(self, asset_id: str, is_favorite: bool) -> Result[Asset]:
        """Set the favorite flag of one asset."""

    async def move_to_trash(self, asset_id: str) -> Result[object]:
        """Move one asset to the server's trash."""
