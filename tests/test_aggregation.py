from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone

import pytest

from immich_tv.domain.models import Asset, ContentType, ExifInfo
from immich_tv.domain.result import Failure, Result, Success
from immich_tv.services.aggregation import (
    AssetQueries,
    combine_results,
    group_by_year,
    is_same_day_and_month,
    shift_months,
    shift_years,
)

pytestmark = pytest.mark.anyio

NOW = datetime(2025, 10, 19, 14, 30, 0)


def make_asset(asset_id: str, taken: datetime | None) -> Asset:
    return Asset(id=asset_id, exif_info=ExifInfo(date_time_original=taken))


class StubAdapter:
    """Answers list_assets by looking up the window's starting year."""

    def __init__(self, by_year: dict[int, Result[list[Asset]]] | None = None) -> None:
        self.by_year = by_year or {}
        self.calls: list[dict] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.oldest: Result[Asset] = Failure("no oldest")

    async def list_assets(self, page, page_size, **kwargs) -> Result[list[Asset]]:
        self.calls.append({"page": page, "page_size": page_size, **kwargs})
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        from_date = kwargs.get("from_date")
        year = from_date.year if from_date is not None else None
        return self.by_year.get(year, Success([]))

    async def get_oldest_asset(self) -> Result[Asset]:
        return self.oldest


def queries(adapter, settings, **kwargs) -> AssetQueries:
    return AssetQueries(adapter, settings, clock=lambda: NOW, **kwargs)


def test_combine_returns_first_failure_when_all_fail():
    first = Failure("first window failed")
    assert combine_results([first, Failure("second"), Failure("third")]) is first


def test_combine_unions_successes_in_order_and_skips_failures():
    a, b, c = make_asset("a", None), make_asset("b", None), make_asset("c", None)
    combined = combine_results([Success([a]), Failure("boom"), Success([b, c])])
    assert combined == Success([a, b, c])


def test_shift_years_clamps_leap_day():
    assert shift_years(datetime(2024, 2, 29, 8, 0), 1) == datetime(2023, 2, 28, 8, 0)
    assert shift_years(datetime(2024, 2, 29, 8, 0), 4) == datetime(2020, 2, 29, 8, 0)


def test_shift_months_clamps_to_month_end():
    assert shift_months(datetime(2025, 5, 31), 3) == datetime(2025, 2, 28)
    assert shift_months(datetime(2025, 1, 15), 2) == datetime(2024, 11, 15)


async def test_recent_queries_one_window_and_shuffles(settings):
    assets = [make_asset(str(i), NOW) for i in range(5)]
    adapter = StubAdapter({2025: Success(assets)})
    shuffled_inputs: list[list[str]] = []

    def reverse(items: list[Asset]) -> None:
        shuffled_inputs.append([asset.id for asset in items])
        items.reverse()

    result = await queries(adapter, settings, shuffle=reverse).recent_assets(1, 50, ContentType.IMAGE)

    assert [asset.id for asset in result.value] == ["4", "3", "2", "1", "0"]
    assert shuffled_inputs == [["0", "1", "2", "3", "4"]]
    (call,) = adapter.calls
    assert call["random"] is True
    assert call["order"] == "desc"
    assert call["content_type"] is ContentType.IMAGE
    assert call["from_date"] == datetime(2025, 7, 19, 14, 30, 0)
    assert call["end_date"] == NOW


async def test_similar_builds_one_centred_window_per_year(make_settings):
    settings = make_settings(similar={"years_back": 3, "period_days": 30})
    adapter = StubAdapter()

    await queries(adapter, settings).similar_assets(1, 20)

    windows = [(call["from_date"], call["end_date"]) for call in adapter.calls]
    assert windows == [
        (datetime(2025, 10, 4, 14, 30), datetime(2025, 11, 3, 14, 30)),
        (datetime(2024, 10, 4, 14, 30), datetime(2024, 11, 3, 14, 30)),
        (datetime(2023, 10, 4, 14, 30), datetime(2023, 11, 3, 14, 30)),
    ]


async def test_similar_runs_sub_queries_concurrently(make_settings):
    settings = make_settings(similar={"years_back": 4})
    adapter = StubAdapter()

    await queries(adapter, settings).similar_assets(1, 20)

    assert adapter.max_in_flight == 4


async def test_similar_returns_first_failure_when_every_window_fails(make_settings):
    settings = make_settings(similar={"years_back": 3})
    adapter = StubAdapter(
        {
            2025: Failure("newest window failed"),
            2024: Failure("middle window failed"),
            2023: Failure("oldest window failed"),
        }
    )

    result = await queries(adapter, settings).similar_assets(1, 20)

    assert result == Failure("newest window failed")


async def test_similar_keeps_partial_successes(make_settings):
    settings = make_settings(similar={"years_back": 2})
    survivor = make_asset("kept", datetime(2024, 10, 20))
    adapter = StubAdapter({2025: Failure("timeout"), 2024: Success([survivor])})

    result = await queries(adapter, settings, shuffle=lambda items: None).similar_assets(1, 20)

    assert result == Success([survivor])


async def test_on_this_day_windows_cover_full_days(make_settings):
    settings = make_settings(similar={"years_back": 2})
    adapter = StubAdapter()

    await queries(adapter, settings).on_this_day_assets(1, 1000)

    windows = [(call["from_date"], call["end_date"]) for call in adapter.calls]
    assert windows == [
        (datetime(2025, 10, 19, 0, 0, 0), datetime(2025, 10, 19, 23, 59, 59)),
        (datetime(2024, 10, 19, 0, 0, 0), datetime(2024, 10, 19, 23, 59, 59)),
    ]


async def test_on_this_day_keeps_only_matching_day_and_month(settings):
    adapter = StubAdapter(
        {
            2025: Success([make_asset("today", datetime(2025, 10, 19, 9, 0)), make_asset("yesterday", datetime(2025, 10, 18, 23, 0))]),
            2022: Success(
                [
                    make_asset("three-years", datetime(2022, 10, 19, 12, 0)),
                    make_asset("other-month", datetime(2022, 9, 19, 12, 0)),
                    make_asset("undated", None),
                ]
            ),
        }
    )

    result = await queries(adapter, settings).on_this_day_assets(1, 1000, years_back=4)

    assert [asset.id for asset in result.value] == ["today", "three-years"]
    assert len(adapter.calls) == 4


async def test_on_this_day_is_not_shuffled(settings):
    ordered = [make_asset(f"a{i}", datetime(2025, 10, 19, i, 0)) for i in range(4)]
    adapter = StubAdapter({2025: Success(ordered)})

    def fail_shuffle(items):
        raise AssertionError("on-this-day results must not be shuffled")

    result = await queries(adapter, settings, shuffle=fail_shuffle).on_this_day_assets(1, 100, years_back=1)

    assert result == Success(ordered)


async def test_merge_keeps_duplicates_unless_deduplicating(make_settings):
    settings = make_settings(similar={"years_back": 2})
    twin = make_asset("twin", datetime(2025, 10, 19))
    adapter = StubAdapter({2025: Success([twin]), 2024: Success([twin])})

    kept = await queries(adapter, settings, shuffle=lambda items: None).similar_assets(1, 10)
    unique = await queries(adapter, settings, shuffle=lambda items: None, deduplicate=True).similar_assets(1, 10)

    assert [asset.id for asset in kept.value] == ["twin", "twin"]
    assert [asset.id for asset in unique.value] == ["twin"]


async def test_year_span_from_oldest_asset(settings):
    adapter = StubAdapter()
    adapter.oldest = Success(make_asset("old", datetime(2019, 3, 1)))
    assert await queries(adapter, settings).year_span_from_oldest() == 7


async def test_year_span_falls_back_to_configured_years(make_settings):
    settings = make_settings(similar={"years_back": 5})
    adapter = StubAdapter()
    assert await queries(adapter, settings).year_span_from_oldest() == 5

    adapter.oldest = Success(make_asset("undated", None).model_copy(update={"file_modified_at": None}))
    assert await queries(adapter, settings).year_span_from_oldest() == 5


async def test_on_this_day_by_year_groups_newest_first(settings):
    adapter = StubAdapter(
        {
            2025: Success([make_asset("now", datetime(2025, 10, 19, 8, 0))]),
            2023: Success([make_asset("a", datetime(2023, 10, 19, 8, 0)), make_asset("b", datetime(2023, 10, 19, 9, 0))]),
        }
    )
    adapter.oldest = Success(make_asset("old", datetime(2023, 1, 1)))

    result = await queries(adapter, settings).on_this_day_by_year(1, 1000)

    assert [(year, [asset.id for asset in assets]) for year, assets in result.value] == [
        (2025, ["now"]),
        (2023, ["a", "b"]),
    ]
    assert len(adapter.calls) == 3


def test_group_by_year_skips_empty_years_and_years_out_of_range():
    assets = [
        make_asset("a", datetime(2025, 10, 19)),
        make_asset("b", datetime(2010, 10, 19)),
        make_asset("c", None),
    ]
    assert [year for year, _ in group_by_year(assets, current_year=2025, years_back=5)] == [2025]


async def test_favorite_assets_use_server_side_filter(settings):
    adapter = StubAdapter()
    await queries(adapter, settings).favorite_assets(3, 100, ContentType.VIDEO)
    (call,) = adapter.calls
    assert call["is_favorite"] is True
    assert call["random"] is False
    assert call["page"] == 3


CEST = timezone(timedelta(hours=2))


def utc_asset(asset_id: str, taken: str) -> Asset:
    return Asset.model_validate({"id": asset_id, "exifInfo": {"dateTimeOriginal": taken}})


@pytest.fixture
def berlin_local_time(monkeypatch: pytest.MonkeyPatch):
    if not hasattr(time, "tzset"):
        pytest.skip("process time zone cannot be changed on this platform")
    monkeypatch.setenv("TZ", "CET-1CEST,M3.5.0,M10.5.0/3")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


async def test_on_this_day_compares_utc_capture_dates_in_the_clock_zone(settings):
    adapter = StubAdapter(
        {
            2022: Success(
                [
                    utc_asset("after-midnight", "2022-10-18T23:30:00.000Z"),
                    utc_asset("next-morning", "2022-10-19T22:30:00.000Z"),
                ]
            )
        }
    )
    now = datetime(2025, 10, 19, 14, 30, tzinfo=CEST)

    result = await AssetQueries(adapter, settings, clock=lambda: now).on_this_day_assets(1, 1000, years_back=4)

    assert [asset.id for asset in result.value] == ["after-midnight"]


async def test_on_this_day_uses_process_local_zone_for_naive_clock(settings, berlin_local_time):
    adapter = StubAdapter({2022: Success([utc_asset("night", "2022-10-18T23:30:00.000Z")])})

    result = await queries(adapter, settings).on_this_day_assets(1, 1000, years_back=4)

    assert [asset.id for asset in result.value] == ["night"]


def test_naive_capture_dates_are_compared_as_wall_clock():
    asset = make_asset("plain", datetime(2022, 10, 19, 0, 15))
    assert is_same_day_and_month(asset, datetime(2025, 10, 19, 23, 0, tzinfo=CEST))


def test_group_by_year_places_new_year_photo_by_local_date():
    assets = [utc_asset("fireworks", "2023-12-31T23:30:00Z")]
    rows = group_by_year(assets, current_year=2025, years_back=5, tz=CEST)
    assert [(year, [asset.id for asset in items]) for year, items in rows] == [(2024, ["fireworks"])]
