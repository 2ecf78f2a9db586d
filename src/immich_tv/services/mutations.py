from __future__ import annotations

import logging

from ..adapters.immich.base import PhotoServerAdapter
from ..domain.models import Asset, FavoriteChange
from ..domain.result import Result, Success
from ..storage.favorites import FavoriteChangeBus, FavoriteOverrideCache
from .views import AssetListView

LOGGER = logging.getLogger(__name__)


class FavoriteMutations:
    """Writes to the server followed by cache and view reconciliation."""

    def __init__(
        self,
        client: PhotoServerAdapter,
        cache: FavoriteOverrideCache,
        bus: FavoriteChangeBus,
    ) -> None:
        self._client = client
        self._cache = cache
        self._bus = bus

    async def toggle_favorite(self, asset_id: str, is_favorite: bool) -> Result[Asset]:
        result = await self._client.toggle_favorite(asset_id, is_favorite)
        if not isinstance(result, Success):
            LOGGER.error("Could not set favorite of %s to %s: %s", asset_id, is_favorite, result.message)
            return result

        self.record_change(FavoriteChange(asset_id=asset_id, is_favorite=is_favorite))
        return Success(self._cache.apply(result.value))

    def record_change(self, change: FavoriteChange) -> None:
        self._cache.set(change.asset_id, change.is_favorite)
        LOGGER.debug(
            "Favorite override stored: %s -> %s (%s entries)",
            change.asset_id,
            change.is_favorite,
            len(self._cache),
        )
        self._bus.publish(change)

    async def move_to_trash(self, asset_id: str, *views: AssetListView) -> Result[object]:
        result = await self._client.move_to_trash(asset_id)
        if not isinstance(result, Success):
            LOGGER.error("Could not move %s to trash: %s", asset_id, result.message)
            return result

        LOGGER.info("Asset %s moved to trash", asset_id)
        for view in views:
            view.remove(asset_id)
        return result
