"""Process-wide ``httpx.AsyncClient`` shared by the search providers."""

import asyncio

import httpx

from .config import Settings, get_settings

_client: httpx.AsyncClient | None = None
_client_lock = asyncio.Lock()


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    # connecting should never eat the whole per-call budget
    timeout = httpx.Timeout(settings.http_timeout, connect=min(5.0, settings.http_timeout))
    return httpx.AsyncClient(
        timeout=timeout,
        limits=httpx.Limits(
            max_connections=settings.http_max_connections,
            max_keepalive_connections=settings.http_max_keepalive,
        ),
        headers={"User-Agent": settings.http_user_agent, "Accept": "application/json"},
        follow_redirects=True,
    )


async def get_http_client(settings: Settings | None = None) -> httpx.AsyncClient:
    global _client

    if _client is None or _client.is_closed:
        async with _client_lock:
            if _client is None or _client.is_closed:
                _client = build_http_client(settings or get_settings())
    return _client


async def shutdown_http_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
