from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..config import Settings, get_settings
from ..errors import AllProvidersExhausted, ProviderError, ProviderTimeoutError
from ..models.news import ProviderQuota, RawHit, SearchOptions
from .providers import SearchProvider

logger = logging.getLogger(__name__)

CacheKey = tuple[str, int, str | None, str | None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ProviderRouter:
    """Tries providers in priority order; first non-empty answer wins.

    Owns the daily quota counters and the short-lived query cache. Quotas
    reset when the UTC calendar date changes.
    """

    providers: Sequence[SearchProvider]
    settings: Settings | None = None
    clock: Callable[[], datetime] = utcnow
    monotonic: Callable[[], float] = time.monotonic
    _quota: ProviderQuota = field(init=False)
    _cache: dict[CacheKey, tuple[float, list[RawHit]]] = field(
        init=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = get_settings()
        self._quota = self._fresh_quota()
        for provider in self.providers:
            logger.info(
                "Search provider %s: %s",
                provider.name,
                "enabled" if provider.enabled else "disabled",
            )
        if not self.has_enabled_provider:
            logger.warning("No search provider is configured; set an API key")

    @property
    def quota(self) -> ProviderQuota:
        return self._quota

    @property
    def has_enabled_provider(self) -> bool:
        return any(provider.enabled for provider in self.providers)

    async def search(self, query: str, options: SearchOptions | None = None) -> list[RawHit]:
        options = options or SearchOptions()
        key = options.cache_key(query)
        cached = self._cache_get(key)
        if cached is not None:
            logger.debug("Cache hit for %r", query)
            return list(cached)

        self._reset_quota_if_needed()
        attempted: dict[str, str] = {}
        for provider in self.providers:
            if not provider.enabled:
                logger.debug("Skipping %s: not configured", provider.name)
                attempted[provider.name] = "disabled"
                continue
            if self._quota.used(provider.name) >= provider.daily_quota:
                logger.debug("Skipping %s: daily quota of %d used", provider.name, provider.daily_quota)
                attempted[provider.name] = "quota-exhausted"
                continue

            # reserve before awaiting so concurrent searches see the slot as taken
            self._quota.usage[provider.name] = self._quota.used(provider.name) + 1
            try:
                results = await self._call(provider, query, options)
            except ProviderError as exc:
                self._refund(provider)
                logger.warning("%s failed (%s) for %r: %s", provider.name, exc.kind, query, exc.message)
                attempted[provider.name] = exc.kind
                continue
            except Exception as exc:  # noqa: BLE001 - any provider defect means "try next"
                self._refund(provider)
                logger.warning("%s raised unexpectedly for %r: %s", provider.name, query, exc)
                attempted[provider.name] = "unexpected"
                continue

            if not results:
                self._refund(provider)
                logger.info("%s returned no results for %r", provider.name, query)
                attempted[provider.name] = "empty"
                continue

            self._cache[key] = (self.monotonic() + self.settings.search_cache_ttl, list(results))
            logger.info("%s returned %d result(s) for %r", provider.name, len(results), query)
            return list(results)

        raise AllProvidersExhausted(query, attempted)

    async def _call(
        self, provider: SearchProvider, query: str, options: SearchOptions
    ) -> list[RawHit]:
        timeout = self.settings.http_timeout
        try:
            return await asyncio.wait_for(provider.search(query, options), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ProviderTimeoutError(provider.name, f"no answer within {timeout:.1f}s") from exc

    def _refund(self, provider: SearchProvider) -> None:
        used = self._quota.usage.get(provider.name, 0)
        self._quota.usage[provider.name] = max(0, used - 1)

    def _cache_get(self, key: CacheKey) -> list[RawHit] | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        expires_at, results = entry
        if self.monotonic() >= expires_at:
            del self._cache[key]
            return None
        return results

    def _fresh_quota(self) -> ProviderQuota:
        return ProviderQuota(
            usage={provider.name: 0 for provider in self.providers},
            reset_date=self.clock().astimezone(timezone.utc).date(),
        )

    def _reset_quota_if_needed(self) -> None:
        today = self.clock().astimezone(timezone.utc).date()
        if self._quota.reset_date != today:
            logger.info("Resetting provider quotas for %s", today.isoformat())
            self._quota = self._fresh_quota()

    def usage_stats(self) -> dict[str, Any]:
        self._reset_quota_if_needed()
        return {
            "today": self._quota.snapshot(),
            "providers": [
                {
                    "name": provider.name,
                    "enabled": provider.enabled,
                    "daily_quota": provider.daily_quota,
                    "used": self._quota.used(provider.name),
                }
                for provider in self.providers
            ],
            "cache_size": len(self._cache),
        }

    async def health_check(self) -> dict[str, Any]:
        """Probe each enabled provider with a one-result query.

        Probes bypass the cache and do not count against the daily quota.
        """
        report: dict[str, Any] = {
            "timestamp": self.clock().isoformat(),
            "providers": {},
            "overall_status": "ok",
        }
        healthy = 0
        enabled = 0
        for provider in self.providers:
            if not provider.enabled:
                report["providers"][provider.name] = {"status": "disabled", "enabled": False}
                continue
            enabled += 1
            try:
                await self._call(provider, "board game", SearchOptions(max_results=1))
            except Exception as exc:  # noqa: BLE001 - reported, not raised
                report["providers"][provider.name] = {
                    "status": "unhealthy",
                    "enabled": True,
                    "error": str(exc),
                }
            else:
                healthy += 1
                report["providers"][provider.name] = {"status": "healthy", "enabled": True}
        if enabled == 0 or healthy == 0:
            report["overall_status"] = "error"
        elif healthy < enabled:
            report["overall_status"] = "degraded"
        return report
