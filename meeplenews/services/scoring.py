"""Three-axis article scoring.

Every article gets three independent 0-100 scores:

* credibility - how trustworthy the outlet is, from a fixed reliability table
  plus a small bonus for explicit provenance markers;
* relevance - base 50 plus 10 per high-value keyword found in the text;
* urgency - a step function of the article's age.

The combined score is ``w_c * credibility + w_r * relevance + w_u * urgency``
with weights taken from settings (0.5 / 0.3 / 0.2 by default). It is never
renormalized. All functions here are pure: the current time is always passed in.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

from ..config import Settings, get_settings
from ..models.news import Article
from .router import utcnow

SOURCE_RELIABILITY: dict[str, int] = {
    "boardgamegeek.com": 90,
    "dicetower.com": 85,
    "shutupandsitdown.com": 85,
    "boardgamewire.com": 85,
    "gamemarket.jp": 85,
    "tgiw.info": 80,
    "bodoge.hoobby.net": 80,
    "prtimes.jp": 80,
    "boardgamequest.com": 75,
    "meeplemountain.com": 75,
    "polygon.com": 75,
    "4gamer.net": 75,
    "famitsu.com": 75,
    "kotaku.com": 70,
    "kickstarter.com": 70,
    "gamefound.com": 70,
    "reddit.com": 45,
}
DEFAULT_CREDIBILITY = 60
FALLBACK_CREDIBILITY_CAP = 30
PROVENANCE_BONUS = 3
PROVENANCE_MARKERS: tuple[str, ...] = (
    "official",
    "press-release",
    "press release",
    "according to",
    "公式",
    "プレスリリース",
)

RELEVANCE_BASE = 50
RELEVANCE_STEP = 10
HIGH_VALUE_KEYWORDS: tuple[str, ...] = (
    "kickstarter",
    "gamefound",
    "crowdfunding",
    "announcement",
    "announced",
    "release",
    "new game",
    "expansion",
    "preorder",
    "pre-order",
    "award",
    "新作",
    "発売",
    "発表",
    "予約",
    "拡張",
    "クラウドファンディング",
)

NEUTRAL_URGENCY = 50
# (upper bound in hours, score at the band start, score at the band end)
URGENCY_BANDS: tuple[tuple[float, int, int], ...] = (
    (1, 100, 90),
    (6, 80, 70),
    (24, 55, 40),
    (168, 30, 20),
    (720, 15, 5),
)
STALE_URGENCY = 5


def _clamp(value: float) -> int:
    return max(0, min(100, int(round(value))))


def _host(article: Article) -> str:
    try:
        host = urlparse(article.url).hostname or ""
    except ValueError:
        host = ""
    return (host or article.source or "").lower().removeprefix("www.")


def lookup_reliability(host: str) -> int:
    for domain, score in SOURCE_RELIABILITY.items():
        if host == domain or host.endswith("." + domain):
            return score
    return DEFAULT_CREDIBILITY


def credibility_score(article: Article) -> int:
    score = lookup_reliability(_host(article))
    haystack = f"{article.url} {article.title} {article.description}".lower()
    if any(marker in haystack for marker in PROVENANCE_MARKERS):
        score += PROVENANCE_BONUS
    if article.is_fallback:
        score = min(score, FALLBACK_CREDIBILITY_CAP)
    return _clamp(score)


def matched_keywords(article: Article) -> list[str]:
    text = f"{article.title} {article.description}".lower()
    return [kw for kw in HIGH_VALUE_KEYWORDS if kw in text]


def relevance_score(article: Article) -> int:
    return _clamp(RELEVANCE_BASE + RELEVANCE_STEP * len(matched_keywords(article)))


def urgency_score(published_at: datetime | None, now: datetime) -> int:
    if published_at is None:
        return NEUTRAL_URGENCY
    age = max(0.0, (now - published_at).total_seconds() / 3600)
    lower = 0.0
    for upper, start, end in URGENCY_BANDS:
        if age <= upper:
            fraction = (age - lower) / (upper - lower)
            return _clamp(start - (start - end) * fraction)
        lower = upper
    return STALE_URGENCY


@dataclass(slots=True)
class ScoringEngine:
    settings: Settings | None = None
    clock: Callable[[], datetime] = utcnow

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = get_settings()

    def combined(self, credibility: int, relevance: int, urgency: int) -> float:
        s = self.settings
        total = (
            s.credibility_weight * credibility
            + s.relevance_weight * relevance
            + s.urgency_weight * urgency
        )
        return round(total, 2)

    def score(self, article: Article, now: datetime | None = None) -> Article:
        now = now or self.clock()
        credibility = credibility_score(article)
        relevance = relevance_score(article)
        urgency = urgency_score(article.published_at, now)
        return article.model_copy(
            update={
                "credibility_score": credibility,
                "relevance_score": relevance,
                "urgency_score": urgency,
                "combined_score": self.combined(credibility, relevance, urgency),
            }
        )

    def score_all(self, articles: Iterable[Article], now: datetime | None = None) -> list[Article]:
        now = now or self.clock()
        return [self.score(article, now) for article in articles]

    @staticmethod
    def rank(articles: Iterable[Article]) -> list[Article]:
        """Sort by combined score, newest first on ties; undated sort last on ties."""

        def key(article: Article) -> tuple[float, float]:
            published = article.published_at.timestamp() if article.published_at else float("-inf")
            return (article.combined_score, published)

        return sorted(articles, key=key, reverse=True)

    def explain(self, article: Article, now: datetime | None = None) -> dict[str, Any]:
        scored = self.score(article, now)
        return {
            "title": scored.title,
            "source": _host(scored),
            "credibility": scored.credibility_score,
            "relevance": scored.relevance_score,
            "urgency": scored.urgency_score,
            "combined": scored.combined_score,
            "matched_keywords": matched_keywords(scored),
            "weights": {
                "credibility": self.settings.credibility_weight,
                "relevance": self.settings.relevance_weight,
                "urgency": self.settings.urgency_weight,
            },
        }
