from __future__ import annotations

import logging
from typing import Sequence

import httpx
from pydantic import BaseModel, ConfigDict

from ...settings import AppSettings
from .base import ImmichAdapterError
from .client import ImmichClient

LOGGER = logging.getLogger(__name__)

USER_AGENT = "immich-tv/0.1"


class ApiClientConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host_name: str
    api_key: str
    disable_ssl_verification: bool = False
    debug_mode: bool = False

    @classmethod
    def from_settings(cls, settings: AppSettings) -> ApiClientConfig:
        return cls(
            host_name=settings.env.host_name,
            api_key=settings.env.api_key.get_secret_value(),
            disable_ssl_verification=settings.env.disable_ssl_verification,
            debug_mode=settings.env.debug_mode,
        )


async def _log_request(request: httpx.Request) -> None:
    LOGGER.debug("HTTP: %s %s", request.method, request.url)


async def _log_response(response: httpx.Response) -> None:
    request = response.request
    LOGGER.debug("HTTP: Response %s for %s %s", response.status_code, request.method, request.url)


def build_http_client(
    config: ApiClientConfig,
    *,
    timeout_seconds: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    api_key = config.api_key.strip()
    if not api_key:
        raise ImmichAdapterError("An Immich API key must be configured")

    event_hooks: dict[str, list] = {"request": [], "response": []}
    if config.debug_mode:
        event_hooks = {"request": [_log_request], "response": [_log_response]}

    return httpx.AsyncClient(
        base_url=f"{config.host_name.rstrip('/')}/api/",
        headers={
            "x-api-key": api_key,
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        },
        verify=not config.disable_ssl_verification,
        timeout=httpx.Timeout(timeout_seconds),
        event_hooks=event_hooks,
        transport=transport,
    )


class ImmichClientFactory:
    """Hands out one client per connection config.

    The cached client is reused while the requested config compares equal to
    the one it was built from; a different config replaces it.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._config: ApiClientConfig | None = None
        self._client: ImmichClient | None = None
        self._retired: list[ImmichClient] = []

    def get_client(
        self,
        config: ApiClientConfig,
        *,
        excluded_album_ids: Sequence[str] = (),
    ) -> ImmichClient:
        if self._client is None or config != self._config:
            if self._client is not None:
                self._retired.append(self._client)
            LOGGER.info("Creating Immich client for %s", config.host_name)
            http_client = build_http_client(
                config,
                timeout_seconds=self._timeout_seconds,
                transport=self._transport,
            )
            self._client = ImmichClient(http_client, excluded_album_ids=excluded_album_ids)
            self._config = config
        return self._client

    def invalidate(self) -> None:
        if self._client is not None:
            self._retired.append(self._client)
        self._client = None
        self._config = None

    async def aclose(self) -> None:
        self.invalidate()
        retired, self._retired = self._retired, []
        for client in retired:
            await client.aclose()
