from .news import Article, ProviderQuota, RawHit, SearchOptions, SearchQuery

__all__ = ["Article", "ProviderQuota", "RawHit", "SearchOptions", "SearchQuery"]
