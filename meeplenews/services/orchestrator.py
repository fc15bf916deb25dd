from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..config import Settings, get_settings
from ..errors import AllProvidersExhausted
from ..models.news import RawHit, SearchOptions, SearchQuery
from .keywords import DEFAULT_CATALOG, KeywordCatalog
from .router import ProviderRouter, utcnow

logger = logging.getLogger(__name__)


def date_restrict_for(hours_limit: int) -> str:
    """Coarse provider-side window; precise filtering happens after the search."""
    if hours_limit <= 24:
        return "d1"
    if hours_limit <= 168:
        return "w1"
    return "m1"


@dataclass(slots=True)
class SearchStats:
    total_searches: int = 0
    successful_searches: int = 0
    failed_searches: int = 0
    last_search_time: datetime | None = None
    total_response_ms: float = 0.0

    @property
    def average_response_ms(self) -> float:
        if not self.successful_searches:
            return 0.0
        return round(self.total_response_ms / self.successful_searches, 1)

    def as_dict(self) -> dict[str, object]:
        return {
            "total_searches": self.total_searches,
            "successful_searches": self.successful_searches,
            "failed_searches": self.failed_searches,
            "last_search_time": self.last_search_time.isoformat() if self.last_search_time else None,
            "average_response_ms": self.average_response_ms,
        }


@dataclass(slots=True)
class SearchOrchestrator:
    router: ProviderRouter
    catalog: KeywordCatalog = DEFAULT_CATALOG
    settings: Settings | None = None
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], datetime] = utcnow
    stats: SearchStats = field(default_factory=SearchStats)

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = get_settings()

    def build_queries(self, hours_limit: int) -> list[list[SearchQuery]]:
        """Queries grouped per layer, in catalog order."""
        plan: list[list[SearchQuery]] = []
        for layer in self.catalog.layers:
            keywords = self.catalog.select(
                layer, self.settings.max_keywords_per_layer, seed=self.settings.keyword_seed
            )
            plan.append(
                [
                    SearchQuery(
                        keyword=keyword,
                        layer=layer.name,
                        hours_limit=hours_limit,
                        text=layer.query_for(keyword),
                    )
                    for keyword in keywords
                ]
            )
        return plan

    async def perform_search(self, hours_limit: int) -> list[RawHit]:
        options = SearchOptions(
            max_results=self.settings.max_results_per_keyword,
            date_restrict=date_restrict_for(hours_limit),
            language=self.settings.search_language,
        )
        semaphore = asyncio.Semaphore(self.settings.search_concurrency)
        delay = self.settings.inter_layer_delay_ms / 1000

        hits: list[RawHit] = []
        succeeded = 0
        failure: Exception | None = None
        for index, queries in enumerate(self.build_queries(hours_limit)):
            if not queries:
                continue
            if index > 0 and delay > 0:
                await self.sleep(delay)
            # gather preserves submission order, so merge order is deterministic
            outcomes = await asyncio.gather(
                *(self._run_query(query, options, semaphore) for query in queries)
            )
            layer_hits = 0
            for outcome in outcomes:
                if isinstance(outcome, Exception):
                    # exhaustion is the more telling reason; keep it once seen
                    if not isinstance(failure, AllProvidersExhausted):
                        failure = outcome
                    continue
                succeeded += 1
                layer_hits += len(outcome)
                hits.extend(outcome)
            logger.info(
                "Layer %s: %d keyword(s), %d hit(s)", queries[0].layer, len(queries), layer_hits
            )

        if not succeeded and failure is not None:
            raise failure
        return hits

    async def _run_query(
        self, query: SearchQuery, options: SearchOptions, semaphore: asyncio.Semaphore
    ) -> list[RawHit] | Exception:
        async with semaphore:
            self.stats.total_searches += 1
            self.stats.last_search_time = self.clock()
            started = time.perf_counter()
            try:
                results = await self.router.search(query.text, options)
            except AllProvidersExhausted as exc:
                self.stats.failed_searches += 1
                logger.warning("Search for %r failed: %s", query.keyword, exc)
                return exc
            except Exception as exc:  # noqa: BLE001 - one keyword never aborts the others
                self.stats.failed_searches += 1
                logger.warning("Search for %r raised: %s", query.keyword, exc)
                return exc
            self.stats.successful_searches += 1
            self.stats.total_response_ms += (time.perf_counter() - started) * 1000

        return [
            hit.model_copy(update={"keyword": query.keyword, "layer": query.layer})
            for hit in results
        ]
