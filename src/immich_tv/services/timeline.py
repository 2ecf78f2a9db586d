from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..adapters.immich.base import PhotoServerAdapter
from ..domain.models import Asset, Bucket, FavoriteChange, PhotosOrder
from ..domain.result import Failure, Result, Success

LOGGER = logging.getLogger(__name__)

UNKNOWN_BUCKET_MESSAGE = "Unknown timeline bucket: {key}"


@dataclass(slots=True)
class YearGroup:
    year: str
    buckets: list[Bucket] = field(default_factory=list)

    @property
    def count(self) -> int:
        return sum(bucket.count for bucket in self.buckets)


def group_buckets_by_year(buckets: list[Bucket]) -> list[YearGroup]:
    groups: dict[str, YearGroup] = {}
    for bucket in buckets:
        groups.setdefault(bucket.year, YearGroup(year=bucket.year)).buckets.append(bucket)
    return [groups[year] for year in sorted(groups, reverse=True)]


class TimelineBrowser:
    """Month-by-month browsing state for one session.

    The bucket list is fetched once and neighbours are found by position in
    that list, never by parsing bucket keys.
    """

    def __init__(
        self,
        client: PhotoServerAdapter,
        *,
        album_id: str | None = None,
        order: PhotosOrder = PhotosOrder.NEWEST_OLDEST,
        show_only_videos: bool = False,
    ) -> None:
        self._client = client
        self._album_id = album_id
        self._order = order
        self.show_only_videos = show_only_videos
        self._buckets: list[Bucket] = []
        self._loaded = False
        self._selected_key: str | None = None
        self._raw_assets: list[Asset] = []

    @property
    def buckets(self) -> list[Bucket]:
        return list(self._buckets)

    @property
    def selected_key(self) -> str | None:
        return self._selected_key

    @property
    def selected_bucket(self) -> Bucket | None:
        index = self._index_of(self._selected_key)
        return None if index is None else self._buckets[index]

    @property
    def assets(self) -> list[Asset]:
        if self.show_only_videos:
            return [asset for asset in self._raw_assets if asset.is_video]
        return list(self._raw_assets)

    def year_groups(self) -> list[YearGroup]:
        return group_buckets_by_year(self._buckets)

    def _index_of(self, key: str | None) -> int | None:
        if key is None:
            return None
        for index, bucket in enumerate(self._buckets):
            if bucket.time_bucket == key:
                return index
        return None

    async def load_buckets(self, *, force: bool = False) -> Result[list[Bucket]]:
        if self._loaded and self._buckets and not force:
            return Success(self.buckets)

        if force:
            self._raw_assets = []

        result = await self._client.list_buckets(self._album_id, self._order)
        if not isinstance(result, Success):
            LOGGER.error("Error loading buckets: %s", result.message)
            return result

        self._buckets = list(result.value)
        self._loaded = True
        if self._index_of(self._selected_key) is None:
            self._selected_key = None
        if self._selected_key is None and self._buckets:
            await self.select_bucket(self._buckets[0].time_bucket)
        elif self._selected_key is not None:
            await self._load_assets(self._selected_key)
        return Success(self.buckets)

    async def select_bucket(self, key: str) -> Result[list[Asset]]:
        if self._index_of(key) is None:
            return Failure(UNKNOWN_BUCKET_MESSAGE.format(key=key))
        if key == self._selected_key and self._raw_assets:
            return Success(self.assets)

        self._selected_key = key
        return await self._load_assets(key)

    async def _load_assets(self, key: str) -> Result[list[Asset]]:
        result = await self._client.get_assets_for_bucket(self._album_id, key, self._order)
        if not isinstance(result, Success):
            LOGGER.error("Error loading assets for bucket '%s': %s", key, result.message)
            return result
        self._raw_assets = list(result.value)
        return Success(self.assets)

    def _neighbour_key(self, step: int) -> str | None:
        index = self._index_of(self._selected_key)
        if index is None:
            return None
        target = index + step
        if 0 <= target < len(self._buckets):
            return self._buckets[target].time_bucket
        return None

    def _older_step(self) -> int:
        return 1 if self._order is PhotosOrder.NEWEST_OLDEST else -1

    def older_key(self) -> str | None:
        return self._neighbour_key(self._older_step())

    def newer_key(self) -> str | None:
        return self._neighbour_key(-self._older_step())

    async def select_older(self) -> Result[list[Asset]] | None:
        key = self.older_key()
        return None if key is None else await self.select_bucket(key)

    async def select_newer(self) -> Result[list[Asset]] | None:
        key = self.newer_key()
        return None if key is None else await self.select_bucket(key)

    def remove_asset(self, asset_id: str) -> None:
        self._raw_assets = [asset for asset in self._raw_assets if asset.id != asset_id]

    def on_favorite_changed(self, change: FavoriteChange) -> None:
        self._raw_assets = [
            asset.model_copy(update={"is_favorite": change.is_favorite})
            if asset.id == change.asset_id
            else asset
            for asset in self._raw_assets
        ]
