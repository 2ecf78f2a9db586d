from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Sequence

import httpx
from pydantic import ValidationError

from ...domain.folders import Folder, build_tree
from ...domain.models import (
    EXCLUDED_TAG_NAME,
    Album,
    AlbumDetails,
    Asset,
    Bucket,
    ContentType,
    Person,
    PhotosOrder,
    SearchRequest,
)
from ...domain.result import Failure, Result, Success
from .executor import execute_api_call

LOGGER = logging.getLogger(__name__)

NO_ASSETS_MESSAGE = "No assets found on the server"


def _format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def _decode(result: Result[Any], parser: Callable[[Any], Any]) -> Result[Any]:
    if not isinstance(result, Success):
        return result
    try:
        return Success(parser(result.value))
    except (ValidationError, KeyError, TypeError, ValueError) as exc:
        LOGGER.error("Unexpected response shape from Immich: %s", exc)
        return Failure(f"Could not fetch data from API, response: {exc}")


def _parse_assets(payload: Any) -> list[Asset]:
    if not isinstance(payload, list):
        raise TypeError("expected a list of assets")
    return [Asset.model_validate(item) for item in payload]


def _parse_paged_assets(payload: Any) -> list[Asset]:
    return _parse_assets(payload["assets"]["items"])


def _parse_bucket_assets(payload: Any) -> list[Asset]:
    if isinstance(payload, list):
        return _parse_assets(payload)
    if not isinstance(payload, dict):
        raise TypeError("expected a bucket envelope")

    ids = payload.get("id")
    if not isinstance(ids, list):
        raise TypeError("bucket envelope did not include an id column")

    def column(name: str) -> list[Any]:
        values = payload.get(name)
        if isinstance(values, list) and len(values) == len(ids):
            return values
        return [None] * len(ids)

    favorites = column("isFavorite")
    images = column("isImage")
    created = column("fileCreatedAt")
    return [
        Asset(
            id=asset_id,
            type="VIDEO" if images[index] is False else "IMAGE",
            is_favorite=bool(favorites[index]),
            file_created_at=created[index],
        )
        for index, asset_id in enumerate(ids)
    ]


def _without_excluded_tag(assets: Iterable[Asset]) -> list[Asset]:
    return [asset for asset in assets if not asset.has_tag(EXCLUDED_TAG_NAME)]


class ImmichClient:
    """Async client for the Immich REST API.

    Every public coroutine returns a Result and never raises for network or
    protocol errors.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        excluded_album_ids: Sequence[str] = (),
    ) -> None:
        self._http = http_client
        self._excluded_album_ids = tuple(excluded_album_ids)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get_asset(self, asset_id: str) -> Result[Asset]:
        result = await execute_api_call(200, lambda: self._http.get(f"assets/{asset_id}"))
        return _decode(result, Asset.model_validate)

    async def toggle_favorite(self, asset_id: str, is_favorite: bool) -> Result[Asset]:
        result = await execute_api_call(
            200,
            lambda: self._http.put(f"assets/{asset_id}", json={"isFavorite": is_favorite}),
        )
        return _decode(result, Asset.model_validate)

    async def move_to_trash(self, asset_id: str) -> Result[object]:
        LOGGER.debug("moveToTrash called with assetId: %s", asset_id)
        return await execute_api_call(
            204,
            lambda: self._http.request(
                "DELETE",
                "assets",
                json={"ids": [asset_id], "force": False},
            ),
            expect_body=False,
        )

    async def list_albums(self) -> Result[list[Album]]:
        owned = _decode(
            await execute_api_call(200, lambda: self._http.get("albums")),
            lambda payload: [Album.model_validate(item) for item in payload],
        )
        if not isinstance(owned, Success):
            return owned

        shared = _decode(
            await execute_api_call(200, lambda: self._http.get("albums", params={"shared": "true"})),
            lambda payload: [Album.model_validate(item) for item in payload],
        )
        return shared.map(lambda shared_albums: owned.value + shared_albums)

    async def get_album(self, album_id: str) -> Result[AlbumDetails]:
        result = _decode(
            await execute_api_call(200, lambda: self._http.get(f"albums/{album_id}")),
            AlbumDetails.model_validate,
        )

        def annotate(album: AlbumDetails) -> AlbumDetails:
            assets = [
                asset.model_copy(update={"album_name": album.album_name})
                for asset in _without_excluded_tag(album.assets)
            ]
            return album.model_copy(update={"assets": assets})

        return result.map(annotate)

    async def list_people(self) -> Result[list[Person]]:
        result = _decode(
            await execute_api_call(200, lambda: self._http.get("people")),
            lambda payload: [Person.model_validate(item) for item in payload["people"]],
        )
        return result.map(lambda people: [p for p in people if p.name and p.name.strip()])

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
        try:
            search_request = SearchRequest(
                page=page,
                size=page_size,
                order=order,
                type=None if content_type is ContentType.ALL else content_type.value,
                person_ids=[str(person_id) for person_id in person_ids],
                taken_before=_format_datetime(end_date),
                taken_after=_format_datetime(from_date),
                with_exif=True,
                is_favorite=is_favorite,
            )
        except ValidationError as exc:
            LOGGER.error("Rejected asset search request: %s", exc)
            return Failure(f"Invalid asset search request: {exc}")
        payload = search_request.to_payload()

        if random:
            result = _decode(
                await execute_api_call(200, lambda: self._http.post("search/random", json=payload)),
                _parse_assets,
            )
        else:
            result = _decode(
                await execute_api_call(200, lambda: self._http.post("search/metadata", json=payload)),
                _parse_paged_assets,
            )

        if not isinstance(result, Success):
            return result

        assets = _without_excluded_tag(result.value)
        for asset in assets:
            LOGGER.debug("listAssets: asset %s - date: %s", asset.original_file_name, asset.capture_date)
        return Success(await self._without_excluded_albums(assets))

    async def _without_excluded_albums(self, assets: list[Asset]) -> list[Asset]:
        if not self._excluded_album_ids:
            return assets

        albums = await asyncio.gather(
            *(self.get_album(album_id) for album_id in self._excluded_album_ids)
        )
        excluded_ids: set[str] = set()
        for album_id, album in zip(self._excluded_album_ids, albums):
            if isinstance(album, Success):
                excluded_ids.update(asset.id for asset in album.value.assets)
            else:
                LOGGER.warning("Excluded album '%s' could not be resolved: %s", album_id, album.message)
        return [asset for asset in assets if asset.id not in excluded_ids]

    async def get_oldest_asset(self) -> Result[Asset]:
        result = await self.list_assets(1, 1, order="asc", content_type=ContentType.ALL)
        if not isinstance(result, Success):
            return result
        if not result.value:
            return Failure(NO_ASSETS_MESSAGE)
        return Success(result.value[0])

    async def list_buckets(self, album_id: str | None, order: PhotosOrder) -> Result[list[Bucket]]:
        params = {"order": order.wire_value}
        if album_id and album_id.strip():
            params["albumId"] = album_id
        result = await execute_api_call(200, lambda: self._http.get("timeline/buckets", params=params))
        return _decode(result, lambda payload: [Bucket.model_validate(item) for item in payload])

    async def get_assets_for_bucket(
        self,
        album_id: str | None,
        bucket_key: str,
        order: PhotosOrder,
    ) -> Result[list[Asset]]:
        params = {"timeBucket": bucket_key, "order": order.wire_value}
        if album_id and album_id.strip():
            params["albumId"] = album_id
        result = await execute_api_call(200, lambda: self._http.get("timeline/bucket", params=params))
        return _decode(result, _parse_bucket_assets)

    async def list_folders(self) -> Result[Folder]:
        result = await execute_api_call(200, lambda: self._http.get("view/folder/unique-paths"))
        return _decode(result, lambda paths: build_tree(str(path) for path in paths))

    async def list_assets_for_folder(self, path: str) -> Result[list[Asset]]:
        result = await execute_api_call(
            200,
            lambda: self._http.get("view/folder", params={"path": path}),
        )
        return _decode(result, lambda payload: _without_excluded_tag(_parse_assets(payload)))
