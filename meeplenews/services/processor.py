from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from ..errors import ProcessingError
from ..models.news import Article, RawHit
from .providers import extract_domain
from .router import utcnow

logger = logging.getLogger(__name__)

TITLE_LIMIT = 200
DESCRIPTION_LIMIT = 300

REQUIRED_KEYWORDS: tuple[str, ...] = (
    "board game",
    "boardgame",
    "tabletop",
    "card game",
    "dice game",
    "strategy game",
    "party game",
    "family game",
    "kickstarter",
    "crowdfunding",
    "game review",
    "game release",
    "announcement",
    "release",
    "ボードゲーム",
    "ボドゲ",
    "卓上ゲーム",
    "カードゲーム",
    "テーブルゲーム",
    "アナログゲーム",
    "新作",
    "発売",
    "発表",
)

_WHITESPACE = re.compile(r"\s+")
_RELATIVE_EN = re.compile(
    r"^(?P<count>\d+|an?)\s*(?P<unit>min|mins|minute|minutes|hour|hours|hr|hrs|"
    r"day|days|week|weeks|month|months)\s+ago$",
    re.IGNORECASE,
)
_RELATIVE_JA = re.compile(r"^(?P<count>\d+)\s*(?P<unit>分|時間|日|週間|か月|ヶ月|ヵ月)前$")
_UNIT_HOURS = {
    "min": 1 / 60,
    "mins": 1 / 60,
    "minute": 1 / 60,
    "minutes": 1 / 60,
    "hour": 1,
    "hours": 1,
    "hr": 1,
    "hrs": 1,
    "day": 24,
    "days": 24,
    "week": 168,
    "weeks": 168,
    "month": 720,
    "months": 720,
    "分": 1 / 60,
    "時間": 1,
    "日": 24,
    "週間": 168,
    "か月": 720,
    "ヶ月": 720,
    "ヵ月": 720,
}


def clean_text(value: str | None, limit: int) -> str:
    """Strip markup, collapse whitespace and cut to ``limit`` characters."""
    if not value:
        return ""
    text = value
    if "<" in text or "&" in text:
        text = BeautifulSoup(text, "lxml").get_text(" ")
    text = _WHITESPACE.sub(" ", text).strip()
    if len(text) > limit:
        text = text[: limit - 1].rstrip() + "…"
    return text


def parse_published(value: str | None, now: datetime) -> datetime | None:
    """Parse absolute or relative ("3 hours ago", "2 日前") dates into UTC."""
    if not value or not value.strip():
        return None
    value = value.strip()
    match = _RELATIVE_EN.match(value) or _RELATIVE_JA.match(value)
    if match:
        count = match.group("count")
        amount = 1 if count.lower() in ("a", "an") else int(count)
        hours = amount * _UNIT_HOURS[match.group("unit").lower()]
        return now - timedelta(hours=hours)
    try:
        parsed = date_parser.parse(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_valid_url(url: str) -> bool:
    if not url.startswith(("http://", "https://")):
        return False
    try:
        return bool(urlparse(url).netloc)
    except ValueError:
        return False


@dataclass(slots=True)
class ResultProcessor:
    required_keywords: Sequence[str] = REQUIRED_KEYWORDS

    def process(
        self, raw: Iterable[RawHit], hours_limit: int, now: datetime | None = None
    ) -> list[Article]:
        now = now or utcnow()
        raw = list(raw)
        articles = self.clean(raw, now)
        counts = [len(raw), len(articles)]
        articles = self.deduplicate(articles)
        counts.append(len(articles))
        articles = self.filter_by_time(articles, hours_limit, now)
        counts.append(len(articles))
        articles = self.filter_relevant(articles)
        counts.append(len(articles))
        articles = self.filter_valid_urls(articles)
        counts.append(len(articles))
        logger.debug(
            "Processed %d hit(s): clean=%d dedup=%d time=%d relevant=%d url=%d", *counts
        )
        return articles

    def clean(self, raw: Iterable[RawHit], now: datetime) -> list[Article]:
        articles: list[Article] = []
        for hit in raw:
            try:
                articles.append(self.to_article(hit, now))
            except ProcessingError as exc:
                logger.debug("Dropping malformed hit: %s", exc)
        return articles

    def to_article(self, hit: RawHit, now: datetime) -> Article:
        title = clean_text(hit.title, TITLE_LIMIT)
        if not title:
            raise ProcessingError(f"hit without title from {hit.provider or 'unknown'}: {hit.url}")
        url = (hit.url or "").strip()
        return Article(
            title=title,
            description=clean_text(hit.snippet, DESCRIPTION_LIMIT),
            url=url,
            source=hit.source or extract_domain(url),
            published_at=parse_published(hit.published_date, now),
            search_keyword=hit.keyword or "",
            search_layer=hit.layer or "",
        )

    @staticmethod
    def deduplicate(articles: Iterable[Article]) -> list[Article]:
        """First occurrence wins; key is the URL, or the lowercased title without one."""
        seen: set[str] = set()
        unique: list[Article] = []
        for article in articles:
            key = article.dedup_key
            if key in seen:
                continue
            seen.add(key)
            unique.append(article)
        return unique

    @staticmethod
    def filter_by_time(
        articles: Iterable[Article], hours_limit: int, now: datetime
    ) -> list[Article]:
        """Drop articles older than the window. Undated articles are kept."""
        cutoff = now - timedelta(hours=hours_limit)
        return [a for a in articles if a.published_at is None or a.published_at >= cutoff]

    def filter_relevant(self, articles: Iterable[Article]) -> list[Article]:
        keywords = [kw.lower() for kw in self.required_keywords]
        kept: list[Article] = []
        for article in articles:
            text = f"{article.title} {article.description}".lower()
            if any(kw in text for kw in keywords):
                kept.append(article)
            else:
                logger.debug("Not board-game related: %s", article.title)
        return kept

    @staticmethod
    def filter_valid_urls(articles: Iterable[Article]) -> list[Article]:
        return [a for a in articles if a.is_no_news_message or is_valid_url(a.url)]
