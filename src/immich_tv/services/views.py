from __future__ import annotations

import logging
from typing import Callable, Iterable

from ..domain.models import Asset, FavoriteChange
from ..storage.favorites import FavoriteChangeBus, FavoriteOverrideCache

LOGGER = logging.getLogger(__name__)


class AssetListView:
    """The in-memory asset list held by one visible screen.

    Assets are rendered through the shared override cache. A favorites-only
    view drops assets as soon as they are known to be un-favorited.
    """

    def __init__(
        self,
        cache: FavoriteOverrideCache,
        *,
        name: str = "assets",
        favorites_only: bool = False,
        assets: Iterable[Asset] = (),
    ) -> None:
        self._cache = cache
        self.name = name
        self.favorites_only = favorites_only
        self._assets: list[Asset] = list(assets)

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, asset_id: object) -> bool:
        return any(asset.id == asset_id for asset in self._assets)

    @property
    def assets(self) -> list[Asset]:
        return self._cache.apply_all(self._assets)

    def replace(self, assets: Iterable[Asset]) -> None:
        self._assets = list(assets)
        if self.favorites_only:
            self.prune_unfavorited()

    def remove(self, asset_id: str) -> bool:
        remaining = [asset for asset in self._assets if asset.id != asset_id]
        removed = len(remaining) != len(self._assets)
        self._assets = remaining
        if removed:
            LOGGER.debug("%s: asset %s removed from view", self.name, asset_id)
        return removed

    def on_favorite_changed(self, change: FavoriteChange) -> None:
        if self.favorites_only and not change.is_favorite:
            self.remove(change.asset_id)
            return
        self._assets = [
            asset.model_copy(update={"is_favorite": change.is_favorite})
            if asset.id == change.asset_id
            else asset
            for asset in self._assets
        ]

    def prune_unfavorited(self) -> list[str]:
        removed = [asset.id for asset in self._assets if self._cache.get(asset.id) is False]
        if removed:
            self._assets = [asset for asset in self._assets if asset.id not in removed]
            LOGGER.debug("%s: removed %s assets that are no longer favorites", self.name, len(removed))
        return removed

    def attach(self, bus: FavoriteChangeBus) -> Callable[[], None]:
        return bus.subscribe(self.on_favorite_changed)
