from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .adapters.immich import ImmichAdapterError
from .adapters.immich.urls import file_url, person_thumbnail_url, thumbnail_url
from .domain.models import Asset, ContentType, Person
from .domain.result import Result, Success
from .services.session import SessionContext
from .services.views import AssetListView
from .settings import AppSettings, configure_logging, load_settings

LOGGER = logging.getLogger(__name__)


class FavoriteUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_favorite: bool = Field(alias="isFavorite")


def _get_session(request: Request) -> SessionContext:
    return request.app.state.session


def _unwrap(result: Result[Any]) -> Any:
    if isinstance(result, Success):
        return result.value
    raise HTTPException(status_code=502, detail=result.message)


def _content_type(settings: AppSettings, raw_value: str | None) -> ContentType:
    if raw_value is None:
        return settings.yaml.browse.content_type
    try:
        return ContentType(raw_value.strip().upper())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"Unknown content type: {raw_value}") from exc


def _asset_payload(asset: Asset, settings: AppSettings) -> dict[str, Any]:
    api_key = settings.env.api_key.get_secret_value()
    payload = asset.model_dump(mode="json", by_alias=True)
    payload["captureDate"] = asset.capture_date.isoformat() if asset.capture_date else None
    payload["thumbnailUrl"] = thumbnail_url(settings.env.host_name, asset.id, api_key=api_key)
    payload["fileUrl"] = file_url(settings.env.host_name, asset.id, asset.type, api_key=api_key)
    return payload


def _render_assets(session: SessionContext, assets: list[Asset]) -> list[dict[str, Any]]:
    return [_asset_payload(asset, session.settings) for asset in session.cache.apply_all(assets)]


def _person_payload(person: Person, settings: AppSettings) -> dict[str, Any]:
    return {
        "id": person.id,
        "name": person.name,
        "thumbnailUrl": person_thumbnail_url(
            settings.env.host_name,
            person.id,
            api_key=settings.env.api_key.get_secret_value(),
        ),
    }


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = load_settings()
    configure_logging(settings.env.debug_mode)
    session = SessionContext(settings)

    application.state.session = session
    application.state.started_at_utc = datetime.now(timezone.utc)
    LOGGER.info("immich-tv browse API started for %s", settings.env.host_name)

    try:
        yield
    finally:
        await session.close()


app = FastAPI(title="Immich TV", version="0.1.0", lifespan=lifespan)


@app.exception_handler(ImmichAdapterError)
async def immich_adapter_error(request: Request, exc: ImmichAdapterError) -> JSONResponse:
    LOGGER.error("Immich client unavailable: %s", exc)
    return JSONResponse({"detail": str(exc)}, status_code=503)


@app.get("/health", response_class=JSONResponse)
async def health(request: Request) -> JSONResponse:
    session = _get_session(request)
    return JSONResponse(
        {
            "status": "ok",
            "service": "immich-tv",
            "host": session.settings.env.host_name,
            "favorite_overrides": len(session.cache),
            "excluded_albums": len(session.settings.excluded_album_ids),
            "started_at_utc": request.app.state.started_at_utc.isoformat(),
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
    )


@app.get("/api/recent", response_class=JSONResponse)
async def recent(
    request: Request,
    page: int = Query(default=1, ge=1),
    content_type: str | None = Query(default=None, alias="contentType"),
) -> JSONResponse:
    session = _get_session(request)
    settings = session.settings
    assets = _unwrap(
        await session.queries().recent_assets(
            page,
            settings.yaml.browse.page_size,
            _content_type(settings, content_type),
        )
    )
    return JSONResponse({"count": len(assets), "items": _render_assets(session, assets)})


@app.get("/api/similar", response_class=JSONResponse)
async def similar(
    request: Request,
    page: int = Query(default=1, ge=1),
    content_type: str | None = Query(default=None, alias="contentType"),
) -> JSONResponse:
    session = _get_session(request)
    settings = session.settings
    assets = _unwrap(
        await session.queries().similar_assets(
            page,
            settings.yaml.browse.page_size,
            _content_type(settings, content_type),
        )
    )
    return JSONResponse({"count": len(assets), "items": _render_assets(session, assets)})


@app.get("/api/on-this-day", response_class=JSONResponse)
async def on_this_day(
    request: Request,
    content_type: str | None = Query(default=None, alias="contentType"),
) -> JSONResponse:
    session = _get_session(request)
    settings = session.settings
    rows = _unwrap(
        await session.queries().on_this_day_by_year(
            1,
            settings.yaml.browse.on_this_day_page_size,
            _content_type(settings, content_type),
        )
    )
    return JSONResponse(
        {
            "rows": [
                {"year": year, "count": len(assets), "items": _render_assets(session, assets)}
                for year, assets in rows
            ]
        }
    )


@app.get("/api/favorites", response_class=JSONResponse)
async def favorites(
    request: Request,
    page: int = Query(default=1, ge=1),
    content_type: str | None = Query(default=None, alias="contentType"),
) -> JSONResponse:
    session = _get_session(request)
    settings = session.settings
    assets = _unwrap(
        await session.queries().favorite_assets(
            page,
            settings.yaml.browse.page_size,
            _content_type(settings, content_type),
        )
    )
    view = AssetListView(session.cache, name="favorites", favorites_only=True)
    view.replace(assets)
    rendered = [_asset_payload(asset, settings) for asset in view.assets]
    return JSONResponse({"count": len(rendered), "items": rendered})


@app.get("/api/albums", response_class=JSONResponse)
async def albums(request: Request) -> JSONResponse:
    session = _get_session(request)
    album_list = _unwrap(await session.client().list_albums())
    return JSONResponse([album.model_dump(mode="json", by_alias=True) for album in album_list])


@app.get("/api/albums/{album_id}", response_class=JSONResponse)
async def album_detail(request: Request, album_id: str) -> JSONResponse:
    session = _get_session(request)
    album = _unwrap(await session.client().get_album(album_id))
    payload = album.model_dump(mode="json", by_alias=True, exclude={"assets"})
    payload["assets"] = _render_assets(session, album.assets)
    return JSONResponse(payload)


@app.get("/api/people", response_class=JSONResponse)
async def people(request: Request) -> JSONResponse:
    session = _get_session(request)
    person_list = _unwrap(await session.client().list_people())
    return JSONResponse([_person_payload(person, session.settings) for person in person_list])


@app.get("/api/timeline/buckets", response_class=JSONResponse)
async def timeline_buckets(request: Request, reload: bool = False) -> JSONResponse:
    session = _get_session(request)
    timeline = session.timeline()
    _unwrap(await timeline.load_buckets(force=reload))
    return JSONResponse(
        {
            "selected": timeline.selected_key,
            "years": [
                {
                    "year": group.year,
                    "count": group.count,
                    "buckets": [bucket.model_dump(by_alias=True) for bucket in group.buckets],
                }
                for group in timeline.year_groups()
            ],
        }
    )


@app.get("/api/timeline/buckets/{bucket_key}", response_class=JSONResponse)
async def timeline_bucket(request: Request, bucket_key: str) -> JSONResponse:
    session = _get_session(request)
    timeline = session.timeline()
    _unwrap(await timeline.load_buckets())
    if bucket_key not in {bucket.time_bucket for bucket in timeline.buckets}:
        raise HTTPException(status_code=404, detail="Unknown timeline bucket")

    assets = _unwrap(await timeline.select_bucket(bucket_key))
    selected = timeline.selected_bucket
    return JSONResponse(
        {
            "bucket": selected.model_dump(by_alias=True) if selected else None,
            "older": timeline.older_key(),
            "newer": timeline.newer_key(),
            "count": len(assets),
            "items": _render_assets(session, assets),
        }
    )


@app.get("/api/folders", response_class=JSONResponse)
async def folders(request: Request) -> JSONResponse:
    session = _get_session(request)
    root = _unwrap(await session.client().list_folders())
    return JSONResponse(root.to_dict())


@app.get("/api/folders/assets", response_class=JSONResponse)
async def folder_assets(request: Request, path: str = Query(min_length=1)) -> JSONResponse:
    session = _get_session(request)
    assets = _unwrap(await session.client().list_assets_for_folder(path))
    return JSONResponse({"path": path, "count": len(assets), "items": _render_assets(session, assets)})


@app.put("/api/assets/{asset_id}/favorite", response_class=JSONResponse)
async def set_favorite(request: Request, asset_id: str, update: FavoriteUpdate) -> JSONResponse:
    session = _get_session(request)
    asset = _unwrap(await session.mutations().toggle_favorite(asset_id, update.is_favorite))
    return JSONResponse(_asset_payload(asset, session.settings))


@app.delete("/api/assets/{asset_id}", response_class=JSONResponse)
async def trash_asset(request: Request, asset_id: str) -> JSONResponse:
    session = _get_session(request)
    _unwrap(await session.mutations().move_to_trash(asset_id))
    if session.active_timeline is not None:
        session.active_timeline.remove_asset(asset_id)
    return JSONResponse({"id": asset_id, "trashed": True})


@app.post("/api/session/logout", response_class=JSONResponse)
async def logout(request: Request) -> JSONResponse:
    session = _get_session(request)
    await session.close()
    return JSONResponse({"status": "logged_out"})
