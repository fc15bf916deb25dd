from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import httpx

from ..config import Settings, get_settings
from ..errors import (
    ProviderAuthError,
    ProviderNetworkError,
    ProviderRateLimitError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from ..http_client import get_http_client
from ..models.news import RawHit, SearchOptions

SERPER_TBS = {"d1": "qdr:d", "w1": "qdr:w", "m1": "qdr:m"}


class SearchProvider(ABC):
    """One external search backend with its own quota and response shape."""

    name: str = "provider"

    @property
    @abstractmethod
    def enabled(self) -> bool: ...

    @property
    @abstractmethod
    def daily_quota(self) -> int: ...

    @abstractmethod
    async def search(self, query: str, options: SearchOptions) -> list[RawHit]: ...


@dataclass(slots=True)
class SerperProvider(SearchProvider):
    settings: Settings | None = None
    client: httpx.AsyncClient | None = None

    name = "serper"

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = get_settings()

    @property
    def enabled(self) -> bool:
        return self.settings.serper_enabled

    @property
    def daily_quota(self) -> int:
        return self.settings.serper_daily_quota

    async def search(self, query: str, options: SearchOptions) -> list[RawHit]:
        client = self.client or await get_http_client(self.settings)
        body: dict[str, Any] = {
            "q": query,
            "num": min(options.max_results, 10),
            "hl": options.language or self.settings.search_language,
            "gl": self.settings.search_country,
        }
        tbs = SERPER_TBS.get(options.date_restrict or "")
        if tbs:
            body["tbs"] = tbs
        headers = {
            "X-API-KEY": self.settings.serper_api_key or "",
            "Content-Type": "application/json",
        }
        payload = await _request(
            self.name,
            client.post(str(self.settings.serper_base_url), json=body, headers=headers),
        )
        organic = payload.get("organic")
        if not isinstance(organic, list):
            return []
        return [
            RawHit(
                title=item.get("title"),
                url=item.get("link"),
                snippet=item.get("snippet"),
                published_date=item.get("date"),
                source=extract_domain(item.get("link")),
                provider=self.name,
            )
            for item in organic
            if isinstance(item, dict)
        ]


@dataclass(slots=True)
class GoogleCSEProvider(SearchProvider):
    settings: Settings | None = None
    client: httpx.AsyncClient | None = None

    name = "google"

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = get_settings()

    @property
    def enabled(self) -> bool:
        return self.settings.google_enabled

    @property
    def daily_quota(self) -> int:
        return self.settings.google_daily_quota

    async def search(self, query: str, options: SearchOptions) -> list[RawHit]:
        client = self.client or await get_http_client(self.settings)
        params: dict[str, Any] = {
            "key": self.settings.google_cse_api_key or "",
            "cx": self.settings.google_cse_id or "",
            "q": query,
            "num": min(options.max_results, 10),
            "hl": options.language or self.settings.search_language,
        }
        if options.date_restrict:
            params["dateRestrict"] = options.date_restrict
        payload = await _request(
            self.name,
            client.get(str(self.settings.google_cse_base_url), params=params),
        )
        items = payload.get("items")
        if not isinstance(items, list):
            return []
        return [
            RawHit(
                title=item.get("title"),
                url=item.get("link"),
                snippet=item.get("snippet"),
                published_date=_google_published_time(item),
                source=extract_domain(item.get("link")),
                provider=self.name,
            )
            for item in items
            if isinstance(item, dict)
        ]


async def _request(provider: str, pending: Awaitable[httpx.Response]) -> dict[str, Any]:
    try:
        response: httpx.Response = await pending
    except httpx.TimeoutException as exc:
        raise ProviderTimeoutError(provider, f"request timed out: {exc}") from exc
    except httpx.TransportError as exc:
        raise ProviderNetworkError(provider, f"request failed: {exc}") from exc

    status = response.status_code
    if status in (401, 403):
        raise ProviderAuthError(provider, f"HTTP {status} - {_error_message(response)}")
    if status == 429:
        raise ProviderRateLimitError(provider, f"HTTP {status} - {_error_message(response)}")
    if status >= 400:
        raise ProviderResponseError(provider, f"HTTP {status} - {_error_message(response)}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderResponseError(provider, "response body is not JSON") from exc
    if not isinstance(payload, dict):
        raise ProviderResponseError(provider, "unexpected JSON payload")
    return payload


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return "Unknown error"
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if payload.get("message"):
            return str(payload["message"])
    return "Unknown error"


def _google_published_time(item: dict[str, Any]) -> str | None:
    metatags = (item.get("pagemap") or {}).get("metatags") or []
    if metatags and isinstance(metatags[0], dict):
        return metatags[0].get("article:published_time")
    return None


def extract_domain(url: str | None) -> str:
    if not url:
        return "unknown"
    try:
        host = urlparse(url).hostname
    except ValueError:
        return "unknown"
    if not host:
        return "unknown"
    return host[4:] if host.startswith("www.") else host


def default_providers(
    settings: Settings | None = None, client: httpx.AsyncClient | None = None
) -> list[SearchProvider]:
    """Providers in priority order: Serper first, Google CSE second."""
    return [
        SerperProvider(settings=settings, client=client),
        GoogleCSEProvider(settings=settings, client=client),
    ]
