from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RawHit(BaseModel):
    """One un-cleaned search result as returned by a provider."""

    title: str | None = Field(default=None, description="Result headline")
    url: str | None = Field(default=None, description="Result link")
    snippet: str | None = Field(default=None, description="Snippet or description")
    published_date: str | None = Field(
        default=None, description="Provider-supplied publication date, unparsed"
    )
    source: str | None = Field(default=None, description="Domain or outlet name")
    provider: str | None = Field(default=None, description="Provider that served the hit")
    keyword: str | None = Field(default=None, description="Catalog keyword that produced it")
    layer: str | None = Field(default=None, description="Catalog layer of the keyword")


class Article(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Cleaned headline")
    description: str = Field(default="", description="Cleaned snippet")
    url: str = Field(default="", description="Canonical URL, empty only for the sentinel")
    source: str = Field(description="Domain or named outlet")
    published_at: datetime | None = Field(
        default=None, description="Publication timestamp in UTC if known"
    )
    search_keyword: str = Field(default="", description="Catalog keyword provenance")
    search_layer: str = Field(default="", description="Catalog layer provenance")
    credibility_score: int = Field(default=0, ge=0, le=100)
    relevance_score: int = Field(default=0, ge=0, le=100)
    urgency_score: int = Field(default=0, ge=0, le=100)
    combined_score: float = Field(default=0.0, ge=0)
    is_fallback: bool = False
    is_no_news_message: bool = False

    @property
    def dedup_key(self) -> str:
        if self.url.startswith("http"):
            return self.url
        return self.title.lower()


class SearchOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_results: int = Field(default=10, ge=1, le=10)
    date_restrict: str | None = Field(
        default=None, description="Coarse recency window: d1, w1 or m1"
    )
    language: str | None = None

    def cache_key(self, query: str) -> tuple[str, int, str | None, str | None]:
        return (query, self.max_results, self.date_restrict, self.language)


class SearchQuery(BaseModel):
    keyword: str
    layer: str
    hours_limit: int
    text: str = Field(description="Query string actually sent to providers")


class ProviderQuota(BaseModel):
    usage: dict[str, int] = Field(default_factory=dict)
    reset_date: date

    def used(self, provider: str) -> int:
        return self.usage.get(provider, 0)

    def snapshot(self) -> dict[str, Any]:
        return {**self.usage, "reset_date": self.reset_date.isoformat()}
