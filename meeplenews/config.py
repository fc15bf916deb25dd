from functools import lru_cache

from pydantic import Field, HttpUrl, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="", extra="ignore", populate_by_name=True
    )

    http_timeout: float = Field(10.0, gt=0, alias="HTTP_TIMEOUT")
    http_max_connections: int = Field(20, ge=1, alias="HTTP_MAX_CONNECTIONS")
    http_max_keepalive: int = Field(10, ge=1, alias="HTTP_MAX_KEEPALIVE")
    http_user_agent: str = Field(
        "MeepleNews/0.1 (+https://example.com; contact=admin@example.com)",
        alias="HTTP_USER_AGENT",
    )

    serper_api_key: str | None = Field(default=None, alias="SERPER_API_KEY")
    serper_base_url: HttpUrl = Field(
        "https://google.serper.dev/search", alias="SERPER_BASE_URL"
    )
    serper_daily_quota: int = Field(100, ge=1, alias="SERPER_DAILY_QUOTA")
    google_cse_api_key: str | None = Field(default=None, alias="GOOGLE_CSE_API_KEY")
    google_cse_id: str | None = Field(default=None, alias="GOOGLE_CSE_ID")
    google_cse_base_url: HttpUrl = Field(
        "https://www.googleapis.com/customsearch/v1", alias="GOOGLE_CSE_BASE_URL"
    )
    google_daily_quota: int = Field(100, ge=1, alias="GOOGLE_DAILY_QUOTA")
    search_language: str = Field("ja", alias="SEARCH_LANGUAGE")
    search_country: str = Field("jp", alias="SEARCH_COUNTRY")
    search_cache_ttl: float = Field(300.0, ge=0, alias="SEARCH_CACHE_TTL")

    max_results_per_keyword: int = Field(10, ge=1, le=10, alias="MAX_RESULTS_PER_KEYWORD")
    max_keywords_per_layer: int = Field(5, ge=1, alias="MAX_KEYWORDS_PER_LAYER")
    search_concurrency: int = Field(3, ge=1, alias="SEARCH_CONCURRENCY")
    inter_layer_delay_ms: int = Field(1000, ge=0, alias="INTER_LAYER_DELAY_MS")
    keyword_seed: int | None = Field(default=None, alias="KEYWORD_SEED")

    credibility_weight: float = Field(0.5, ge=0, alias="CREDIBILITY_WEIGHT")
    relevance_weight: float = Field(0.3, ge=0, alias="RELEVANCE_WEIGHT")
    urgency_weight: float = Field(0.2, ge=0, alias="URGENCY_WEIGHT")

    scheduled_hours_limit: int = Field(12, ge=1, alias="SCHEDULED_HOURS_LIMIT")
    on_demand_hours_limit: int = Field(6, ge=1, alias="ON_DEMAND_HOURS_LIMIT")
    max_articles: int = Field(3, ge=1, alias="MAX_ARTICLES")
    fallback_enabled: bool = Field(True, alias="FALLBACK_ENABLED")
    fallback_max_articles: int = Field(2, ge=0, alias="FALLBACK_MAX_ARTICLES")

    database_url: str = Field("sqlite:///meeplenews.db", alias="DATABASE_URL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @model_validator(mode="after")
    def _check_weights(self) -> "Settings":
        total = self.credibility_weight + self.relevance_weight + self.urgency_weight
        if total <= 0:
            raise ValueError("at least one scoring weight must be positive")
        return self

    @property
    def serper_enabled(self) -> bool:
        return bool(self.serper_api_key)

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_cse_api_key and self.google_cse_id)


@lru_cache
def get_settings() -> Settings:
    return Settings()
