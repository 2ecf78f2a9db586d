from __future__ import annotations

import logging
from typing import Callable, Iterable

from ..domain.models import Asset, FavoriteChange

LOGGER = logging.getLogger(__name__)

FavoriteListener = Callable[[FavoriteChange], None]


class FavoriteOverrideCache:
    """Favorite states confirmed locally but possibly not yet seen in a server read.

    An entry wins over the favorite flag of any asset read from the server
    until it is overwritten or the cache is cleared at session teardown.
    Writes are last-write-wins.
    """

    def __init__(self) -> None:
        self._overrides: dict[str, bool] = {}

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._overrides

    def __len__(self) -> int:
        return len(self._overrides)

    def get(self, asset_id: str) -> bool | None:
        return self._overrides.get(asset_id)

    def set(self, asset_id: str, is_favorite: bool) -> None:
        self._overrides[asset_id] = is_favorite

    def clear(self) -> None:
        LOGGER.debug("Clearing %s favorite overrides", len(self._overrides))
        self._overrides.clear()

    def resolve(self, asset: Asset) -> bool:
        override = self._overrides.get(asset.id)
        return asset.is_favorite if override is None else override

    def apply(self, asset: Asset) -> Asset:
        resolved = self.resolve(asset)
        if resolved == asset.is_favorite:
            return asset
        return asset.model_copy(update={"is_favorite": resolved})

    def apply_all(self, assets: Iterable[Asset]) -> list[Asset]:
        if not self._overrides:
            return list(assets)
        return [self.apply(asset) for asset in assets]


class FavoriteChangeBus:
    def __init__(self) -> None:
        self._listeners: list[FavoriteListener] = []

    def subscribe(self, listener: FavoriteListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: FavoriteListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            return

    def publish(self, change: FavoriteChange) -> None:
        LOGGER.debug("Favorite changed: %s -> %s", change.asset_id, change.is_favorite)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                LOGGER.exception("Favorite listener failed for asset '%s'", change.asset_id)
