import asyncio
from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from meeplenews.config import Settings
from meeplenews.models import RawHit, SearchOptions
from meeplenews.services.providers import SearchProvider

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for field in Settings.model_fields.values():
        if field.alias:
            monkeypatch.delenv(field.alias, raising=False)


def make_settings(**overrides) -> Settings:
    values = {
        "serper_api_key": "serper-key",
        "google_cse_api_key": "google-key",
        "google_cse_id": "engine-id",
        "inter_layer_delay_ms": 0,
        "database_url": "sqlite://",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


class FakeProvider(SearchProvider):
    def __init__(
        self,
        name: str,
        hits: list[RawHit] | Callable[[str], list[RawHit]] | None = None,
        *,
        error: Exception | None = None,
        enabled: bool = True,
        quota: int = 100,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.hits = hits if hits is not None else []
        self.error = error
        self._enabled = enabled
        self._quota = quota
        self.delay = delay
        self.calls: list[tuple[str, SearchOptions]] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def daily_quota(self) -> int:
        return self._quota

    async def search(self, query: str, options: SearchOptions) -> list[RawHit]:
        self.calls.append((query, options))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if callable(self.hits):
            return self.hits(query)
        return list(self.hits)


def hit(
    title: str,
    url: str,
    snippet: str = "A new board game release",
    published: str | None = None,
) -> RawHit:
    return RawHit(title=title, url=url, snippet=snippet, published_date=published)


class Clock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now
