from __future__ import annotations

import asyncio
import calendar
import logging
import random
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Iterable, Sequence

from ..adapters.immich.base import PhotoServerAdapter
from ..domain.models import Asset, ContentType
from ..domain.result import Failure, Result, Success
from ..settings import AppSettings

LOGGER = logging.getLogger(__name__)

DateWindow = tuple[datetime, datetime]


def shift_years(value: datetime, years: int) -> datetime:
    try:
        return value.replace(year=value.year - years)
    except ValueError:
        # Feb 29 in a non-leap year
        return value.replace(year=value.year - years, day=28)


def shift_months(value: datetime, months: int) -> datetime:
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def combine_results(results: Sequence[Result[list[Asset]]]) -> Result[list[Asset]]:
    """Merge sub-query results in window order.

    Failed sub-queries contribute nothing. Only when every sub-query failed
    is the first failure returned.
    """
    if not results:
        return Success([])
    if all(not result.is_success for result in results):
        return results[0]

    merged: list[Asset] = []
    for result in results:
        if isinstance(result, Success):
            merged.extend(result.value)
    return Success(merged)


def deduplicate_assets(assets: Iterable[Asset]) -> list[Asset]:
    seen: set[str] = set()
    unique: list[Asset] = []
    for asset in assets:
        if asset.id in seen:
            continue
        seen.add(asset.id)
        unique.append(asset)
    return unique


def local_capture_date(asset: Asset, tz: tzinfo | None = None) -> datetime | None:
    """Capture date as a wall-clock time in ``tz``, or the local zone when None.

    Naive capture dates are already wall-clock times and are returned as is.
    """
    captured = asset.capture_date
    if captured is None or captured.tzinfo is None:
        return captured
    return captured.astimezone(tz)


def is_same_day_and_month(asset: Asset, reference: datetime) -> bool:
    captured = local_capture_date(asset, reference.tzinfo)
    if captured is None:
        return False
    return captured.day == reference.day and captured.month == reference.month


def group_by_year(
    assets: Iterable[Asset],
    *,
    current_year: int,
    years_back: int,
    tz: tzinfo | None = None,
) -> list[tuple[int, list[Asset]]]:
    by_year: dict[int, list[Asset]] = {}
    for asset in assets:
        captured = local_capture_date(asset, tz)
        if captured is None:
            continue
        by_year.setdefault(captured.year, []).append(asset)

    rows: list[tuple[int, list[Asset]]] = []
    for year_offset in range(years_back):
        year = current_year - year_offset
        if by_year.get(year):
            rows.append((year, by_year[year]))
    return rows


class AssetQueries:
    """Higher-level asset queries built from date-windowed searches."""

    def __init__(
        self,
        client: PhotoServerAdapter,
        settings: AppSettings,
        *,
        clock: Callable[[], datetime] = datetime.now,
        shuffle: Callable[[list[Asset]], None] = random.shuffle,
        deduplicate: bool = False,
    ) -> None:
        self._client = client
        self._settings = settings
        self._clock = clock
        self._shuffle = shuffle
        self._deduplicate = deduplicate

    def _shuffled(self, assets: list[Asset]) -> list[Asset]:
        shuffled = list(assets)
        self._shuffle(shuffled)
        return shuffled

    async def _query_windows(
        self,
        windows: Sequence[DateWindow],
        *,
        page: int,
        page_size: int,
        content_type: ContentType,
    ) -> Result[list[Asset]]:
        outcomes = await asyncio.gather(
            *(
                self._client.list_assets(
                    page,
                    page_size,
                    random=True,
                    order="desc",
                    from_date=from_date,
                    end_date=end_date,
                    content_type=content_type,
                )
                for from_date, end_date in windows
            ),
            return_exceptions=True,
        )

        results: list[Result[list[Asset]]] = []
        for (from_date, end_date), outcome in zip(windows, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                LOGGER.error(
                    "Asset query %s - %s raised unexpectedly",
                    from_date,
                    end_date,
                    exc_info=outcome,
                )
                results.append(Failure(f"Could not fetch data from API, response: {outcome}"))
                continue
            if not outcome.is_success:
                LOGGER.warning("Asset query %s - %s failed: %s", from_date, end_date, outcome.message)
            results.append(outcome)

        combined = combine_results(results)
        if self._deduplicate:
            return combined.map(deduplicate_assets)
        return combined

    async def recent_assets(
        self,
        page: int,
        page_size: int,
        content_type: ContentType = ContentType.ALL,
    ) -> Result[list[Asset]]:
        now = self._clock()
        from_date = shift_months(now, self._settings.yaml.recent.months_back)
        result = await self._query_windows(
            [(from_date, now)],
            page=page,
            page_size=page_size,
            content_type=content_type,
        )
        return result.map(self._shuffled)

    async def similar_assets(
        self,
        page: int,
        page_size: int,
        content_type: ContentType = ContentType.ALL,
    ) -> Result[list[Asset]]:
        now = self._clock()
        half_period = timedelta(days=self._settings.yaml.similar.period_days // 2)
        windows = [
            (shift_years(now - half_period, years), shift_years(now + half_period, years))
            for years in range(self._settings.yaml.similar.years_back)
        ]
        result = await self._query_windows(
            windows,
            page=page,
            page_size=page_size,
            content_type=content_type,
        )
        return result.map(self._shuffled)

    async def on_this_day_assets(
        self,
        page: int,
        page_size: int,
        content_type: ContentType = ContentType.ALL,
        years_back: int | None = None,
    ) -> Result[list[Asset]]:
        now = self._clock()
        span = self._settings.yaml.similar.years_back if years_back is None else years_back
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end = now.replace(hour=23, minute=59, second=59, microsecond=0)
        LOGGER.debug("OnThisDay: looking for day %s of month %s", now.day, now.month)

        windows = [
            (shift_years(day_start, offset), shift_years(day_end, offset))
            for offset in range(span)
        ]
        result = await self._query_windows(
            windows,
            page=page,
            page_size=page_size,
            content_type=content_type,
        )
        if not isinstance(result, Success):
            return result

        filtered = [asset for asset in result.value if is_same_day_and_month(asset, now)]
        LOGGER.debug(
            "OnThisDay: %s assets before filtering, %s after",
            len(result.value),
            len(filtered),
        )
        return Success(filtered)

    async def year_span_from_oldest(self) -> int:
        """Number of calendar years from the oldest asset up to the current one."""
        now = self._clock()
        fallback = self._settings.yaml.similar.years_back
        oldest = await self._client.get_oldest_asset()
        if not isinstance(oldest, Success):
            LOGGER.error("Error loading oldest asset: %s", oldest.message)
            return fallback

        captured = local_capture_date(oldest.value, now.tzinfo)
        if captured is None:
            return fallback
        return max(now.year - captured.year + 1, 1)

    async def on_this_day_by_year(
        self,
        page: int,
        page_size: int,
        content_type: ContentType = ContentType.ALL,
    ) -> Result[list[tuple[int, list[Asset]]]]:
        span = await self.year_span_from_oldest()
        result = await self.on_this_day_assets(page, page_size, content_type, span)
        now = self._clock()
        return result.map(
            lambda assets: group_by_year(
                assets,
                current_year=now.year,
                years_back=span,
                tz=now.tzinfo,
            )
        )

    async def favorite_assets(
        self,
        page: int,
        page_size: int,
        content_type: ContentType = ContentType.ALL,
    ) -> Result[list[Asset]]:
        return await self._client.list_assets(
            page,
            page_size,
            random=False,
            order="desc",
            content_type=content_type,
            is_favorite=True,
        )
