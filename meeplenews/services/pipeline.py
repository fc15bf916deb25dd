from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

import httpx

from ..config import Settings, get_settings
from ..errors import AllProvidersExhausted
from ..models.news import Article
from .fallback import FallbackGenerator, no_news_sentinel
from .keywords import DEFAULT_CATALOG, KeywordCatalog
from .ledger import PostedArticleLedger, SqlPostedArticleLedger
from .orchestrator import SearchOrchestrator
from .posted_filter import PostedArticleFilter
from .processor import ResultProcessor
from .providers import default_providers
from .router import ProviderRouter, utcnow
from .scoring import ScoringEngine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class NewsPipeline:
    """Single entry point: search, process, score, filter, fall back.

    ``get_board_game_news`` never raises for degraded conditions; the worst
    outcome is a one-element list holding the no-news sentinel. Invocations
    are serialized so quota counters and the posted ledger are not raced.
    """

    orchestrator: SearchOrchestrator | None = None
    processor: ResultProcessor = field(default_factory=ResultProcessor)
    scorer: ScoringEngine | None = None
    posted_filter: PostedArticleFilter = field(default_factory=PostedArticleFilter)
    fallback: FallbackGenerator | None = None
    settings: Settings | None = None
    clock: Callable[[], datetime] = utcnow
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = get_settings()
        if self.scorer is None:
            self.scorer = ScoringEngine(settings=self.settings, clock=self.clock)
        if self.fallback is None:
            self.fallback = FallbackGenerator(max_articles=self.settings.fallback_max_articles)

    @property
    def catalog(self) -> KeywordCatalog:
        return self.orchestrator.catalog if self.orchestrator else DEFAULT_CATALOG

    def hours_limit(self, is_scheduled: bool) -> int:
        if is_scheduled:
            return self.settings.scheduled_hours_limit
        return self.settings.on_demand_hours_limit

    async def get_board_game_news(self, is_scheduled: bool = False) -> list[Article]:
        async with self._lock:
            hours_limit = self.hours_limit(is_scheduled)
            try:
                articles = await self._discover(hours_limit)
            except AllProvidersExhausted as exc:
                logger.warning("All search providers exhausted: %s", exc)
                articles = []
            except Exception:  # noqa: BLE001 - callers always get a valid list
                logger.exception("News discovery failed; falling back")
                articles = []

            if articles:
                top = articles[: self.settings.max_articles]
                logger.info("Returning %d ranked article(s) for %dh window", len(top), hours_limit)
                return top
            return self._fallback(hours_limit)

    async def _discover(self, hours_limit: int) -> list[Article]:
        if self.orchestrator is None or not self.orchestrator.router.has_enabled_provider:
            logger.warning("No search capability configured; skipping live search")
            return []
        now = self.clock()
        raw = await self.orchestrator.perform_search(hours_limit)
        articles = self.processor.process(raw, hours_limit, now)
        ranked = self.scorer.rank(self.scorer.score_all(articles, now))
        return await self.posted_filter.filter(ranked)

    def _fallback(self, hours_limit: int) -> list[Article]:
        if not self.settings.fallback_enabled:
            return [no_news_sentinel(hours_limit)]
        try:
            layers = self.catalog.layers
            limit = self.settings.max_keywords_per_layer
            keywords = self.catalog.select(layers[0], limit) if layers else []
            generated = self.fallback.generate(keywords)
            ranked = self.scorer.rank(self.scorer.score_all(generated))
        except Exception:  # noqa: BLE001 - the sentinel is always available
            logger.exception("Fallback generation failed")
            ranked = []
        if not ranked:
            return [no_news_sentinel(hours_limit)]
        logger.warning("No live articles survived; returning %d fallback article(s)", len(ranked))
        return ranked[: self.settings.max_articles]

    async def mark_posted(self, articles: Iterable[Article]) -> int:
        """Record delivered articles; sentinel and fallback articles are skipped."""
        ledger: PostedArticleLedger | None = self.posted_filter.ledger
        if ledger is None:
            return 0
        marked = 0
        for article in articles:
            if article.is_no_news_message or article.is_fallback or not article.url:
                continue
            try:
                await ledger.mark_posted(article)
            except Exception as exc:  # noqa: BLE001 - delivery already happened
                logger.error("Could not mark %s as posted: %s", article.url, exc)
                continue
            marked += 1
        return marked


def build_pipeline(
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    ledger: PostedArticleLedger | None = None,
) -> NewsPipeline:
    settings = settings or get_settings()
    router = ProviderRouter(default_providers(settings, client), settings=settings)
    if ledger is None:
        ledger = SqlPostedArticleLedger(settings.database_url)
    return NewsPipeline(
        orchestrator=SearchOrchestrator(router=router, settings=settings),
        processor=ResultProcessor(),
        scorer=ScoringEngine(settings=settings),
        posted_filter=PostedArticleFilter(ledger=ledger),
        fallback=FallbackGenerator(max_articles=settings.fallback_max_articles),
        settings=settings,
    )
