from __future__ import annotations

from urllib.parse import quote, urlencode

DEFAULT_THUMBNAIL_SIZE = "preview"


def _normalize_host(host_name: str) -> str:
    return host_name.strip().lower().rstrip("/")


def _with_key(url: str, api_key: str | None, params: dict[str, str] | None = None) -> str:
    query = dict(params or {})
    if api_key:
        query["x-api-key"] = api_key.strip()
    if not query:
        return url
    return f"{url}?{urlencode(query)}"


def thumbnail_url(
    host_name: str,
    asset_id: str,
    *,
    size: str = DEFAULT_THUMBNAIL_SIZE,
    api_key: str | None = None,
) -> str:
    base = f"{_normalize_host(host_name)}/api/assets/{quote(asset_id, safe='')}/thumbnail"
    return _with_key(base, api_key, {"size": size})


def original_url(host_name: str, asset_id: str, *, api_key: str | None = None) -> str:
    base = f"{_normalize_host(host_name)}/api/assets/{quote(asset_id, safe='')}/original"
    return _with_key(base, api_key)


def video_playback_url(host_name: str, asset_id: str, *, api_key: str | None = None) -> str:
    base = f"{_normalize_host(host_name)}/api/assets/{quote(asset_id, safe='')}/video/playback"
    return _with_key(base, api_key)


def file_url(
    host_name: str,
    asset_id: str,
    asset_type: str,
    *,
    api_key: str | None = None,
) -> str:
    if asset_type.upper() == "VIDEO":
        return video_playback_url(host_name, asset_id, api_key=api_key)
    return original_url(host_name, asset_id, api_key=api_key)


def person_thumbnail_url(host_name: str, person_id: str, *, api_key: str | None = None) -> str:
    base = f"{_normalize_host(host_name)}/api/people/{quote(person_id, safe='')}/thumbnail"
    return _with_key(base, api_key)
