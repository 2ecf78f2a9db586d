from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

import httpx

from ..adapters.immich.client import ImmichClient
from ..adapters.immich.factory import ApiClientConfig, ImmichClientFactory
from ..settings import AppSettings
from ..storage.favorites import FavoriteChangeBus, FavoriteOverrideCache
from .aggregation import AssetQueries
from .mutations import FavoriteMutations
from .timeline import TimelineBrowser

LOGGER = logging.getLogger(__name__)


class SessionContext:
    """Application-level owner of the state shared by every screen.

    The active timeline is subscribed to the favorite change bus for as long
    as it is the session's timeline.
    """

    def __init__(
        self,
        settings: AppSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.settings = settings
        self.cache = FavoriteOverrideCache()
        self.bus = FavoriteChangeBus()
        self.factory = ImmichClientFactory(
            timeout_seconds=settings.env.request_timeout_seconds,
            transport=transport,
        )
        self._clock = clock
        self._timeline: TimelineBrowser | None = None
        self._timeline_client: ImmichClient | None = None
        self._timeline_unsubscribe: Callable[[], None] | None = None

    def client(self) -> ImmichClient:
        return self.factory.get_client(
            ApiClientConfig.from_settings(self.settings),
            excluded_album_ids=self.settings.excluded_album_ids,
        )

    def queries(self) -> AssetQueries:
        return AssetQueries(self.client(), self.settings, clock=self._clock)

    def mutations(self) -> FavoriteMutations:
        return FavoriteMutations(self.client(), self.cache, self.bus)

    @property
    def active_timeline(self) -> TimelineBrowser | None:
        return self._timeline

    def timeline(self) -> TimelineBrowser:
        client = self.client()
        if self._timeline is None or self._timeline_client is not client:
            self._drop_timeline()
            self._timeline = TimelineBrowser(
                client,
                show_only_videos=self.settings.yaml.browse.show_only_videos,
            )
            self._timeline_client = client
            self._timeline_unsubscribe = self.bus.subscribe(self._timeline.on_favorite_changed)
        return self._timeline

    def _drop_timeline(self) -> None:
        if self._timeline_unsubscribe is not None:
            self._timeline_unsubscribe()
        self._timeline = None
        self._timeline_client = None
        self._timeline_unsubscribe = None

    async def close(self) -> None:
        LOGGER.info("Closing session")
        self.cache.clear()
        self._drop_timeline()
        await self.factory.aclose()
