from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Union

import httpx
import pytest

from immich_tv.adapters.immich.client import ImmichClient
from immich_tv.settings import AppSettings, BrowseYamlSettings, EnvSettings

HOST = "http://immich.test"

Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeImmichServer:
    """Routes requests by (method, path) and records every request it sees."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], Responder] = {}

    def route(self, method: str, path: str, responder: Responder) -> None:
        self._routes[(method.upper(), path)] = responder

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self._routes.get((request.method, request.url.path))
        if responder is None:
            return httpx.Response(404, text=f"no route for {request.method} {request.url.path}")
        if isinstance(responder, httpx.Response):
            return responder
        return responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def client(self, *, excluded_album_ids: tuple[str, ...] = ()) -> ImmichClient:
        http_client = httpx.AsyncClient(base_url=f"{HOST}/api/", transport=self.transport)
        return ImmichClient(http_client, excluded_album_ids=excluded_album_ids)


def asset_json(
    asset_id: str,
    *,
    taken: str | None = "2020-06-15T12:00:00+00:00",
    is_favorite: bool = False,
    tags: list[str] | None = None,
    asset_type: str = "IMAGE",
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": asset_id,
        "type": asset_type,
        "originalFileName": f"{asset_id}.jpg",
        "fileModifiedAt": "2001-01-01T00:00:00+00:00",
        "isFavorite": is_favorite,
        "exifInfo": {"dateTimeOriginal": taken},
    }
    if tags is not None:
        payload["tags"] = [{"id": f"tag-{name}", "name": name} for name in tags]
    return payload


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def server() -> FakeImmichServer:
    return FakeImmichServer()


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., AppSettings]:
    def factory(api_key: str = "secret-key", **yaml_overrides: Any) -> AppSettings:
        env = EnvSettings(
            _env_file=None,
            host_name=HOST,
            api_key=api_key,
            config_path=tmp_path / "immich_tv.yaml",
        )
        return AppSettings(
            env=env,
            yaml=BrowseYamlSettings.model_validate(yaml_overrides),
            project_root=tmp_path,
            config_path=tmp_path / "immich_tv.yaml",
        )

    return factory


@pytest.fixture
def settings(make_settings: Callable[..., AppSettings]) -> AppSettings:
    return make_settings()
