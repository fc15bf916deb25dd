from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from ..models.news import Article
from .ledger import PostedArticleLedger

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PostedArticleFilter:
    ledger: PostedArticleLedger | None = None

    async def filter(self, articles: Iterable[Article]) -> list[Article]:
        """Drop already-posted articles; an unreachable ledger counts as empty."""
        articles = list(articles)
        if self.ledger is None:
            return articles
        unposted: list[Article] = []
        for article in articles:
            try:
                posted = await self.ledger.is_posted(article.url)
            except Exception as exc:  # noqa: BLE001 - any ledger failure means "nothing posted"
                logger.warning("Posted-article ledger unavailable, not filtering: %s", exc)
                return articles
            if not posted:
                unposted.append(article)
        logger.debug("%d of %d article(s) not posted yet", len(unposted), len(articles))
        return unposted
