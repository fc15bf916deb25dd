from .keywords import DEFAULT_CATALOG, KeywordCatalog, KeywordLayer
from .ledger import InMemoryPostedArticleLedger, PostedArticleLedger, SqlPostedArticleLedger
from .orchestrator import SearchOrchestrator
from .pipeline import NewsPipeline, build_pipeline
from .posted_filter import PostedArticleFilter
from .processor import ResultProcessor
from .providers import GoogleCSEProvider, SearchProvider, SerperProvider
from .router import ProviderRouter
from .scoring import ScoringEngine

__all__ = [
    "DEFAULT_CATALOG",
    "GoogleCSEProvider",
    "InMemoryPostedArticleLedger",
    "KeywordCatalog",
    "KeywordLayer",
    "NewsPipeline",
    "PostedArticleFilter",
    "PostedArticleLedger",
    "ProviderRouter",
    "ResultProcessor",
    "ScoringEngine",
    "SearchOrchestrator",
    "SearchProvider",
    "SerperProvider",
    "SqlPostedArticleLedger",
    "build_pipeline",
]
