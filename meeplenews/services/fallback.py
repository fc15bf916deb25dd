from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..models.news import Article

NO_NEWS_TITLE = "ニュースなし"
NO_NEWS_SOURCE = "YOLUBot"


@dataclass(frozen=True, slots=True)
class FallbackTemplate:
    title: str
    description: str
    url: str
    source: str


FALLBACK_TEMPLATES: tuple[FallbackTemplate, ...] = (
    FallbackTemplate(
        "Board Game News: {keyword}",
        "Latest board game news and updates related to {keyword}.",
        "https://boardgamequest.com/category/news/",
        "boardgamequest.com",
    ),
    FallbackTemplate(
        "Tabletop Gaming Update: {keyword}",
        "Recent developments in the tabletop gaming industry covering {keyword}.",
        "https://www.meeplemountain.com/news/",
        "meeplemountain.com",
    ),
    FallbackTemplate(
        "BoardGameGeek Hotness: {keyword}",
        "What the board game community is talking about this week, including {keyword}.",
        "https://boardgamegeek.com/hotness",
        "boardgamegeek.com",
    ),
)


@dataclass(slots=True)
class FallbackGenerator:
    """Templated stand-in articles used when no real result survives."""

    templates: Sequence[FallbackTemplate] = FALLBACK_TEMPLATES
    max_articles: int = 2

    def generate(self, keywords: Sequence[str]) -> list[Article]:
        if self.max_articles <= 0 or not keywords:
            return []
        articles: list[Article] = []
        for index, template in enumerate(self.templates[: self.max_articles]):
            keyword = keywords[index % len(keywords)]
            articles.append(
                Article(
                    title=template.title.format(keyword=keyword),
                    description=template.description.format(keyword=keyword),
                    url=template.url,
                    source=template.source,
                    search_keyword=keyword,
                    is_fallback=True,
                )
            )
        return articles


def no_news_sentinel(hours_limit: int) -> Article:
    message = f"直近{hours_limit}時間以内にめぼしいニュースはありませんでしたヨモ"
    return Article(
        title=NO_NEWS_TITLE,
        description=message,
        url="",
        source=NO_NEWS_SOURCE,
        is_no_news_message=True,
    )
