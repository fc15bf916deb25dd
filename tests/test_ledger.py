import pytest

from meeplenews.errors import PersistenceError
from meeplenews.models import Article
from meeplenews.services.ledger import (
    InMemoryPostedArticleLedger,
    PostedArticleLedger,
    SqlPostedArticleLedger,
)
from meeplenews.services.posted_filter import PostedArticleFilter


def make(url: str, title: str = "Board game news") -> Article:
    return Article(title=title, url=url, source="example.com", description="desc")


class BrokenLedger(PostedArticleLedger):
    async def is_posted(self, url: str) -> bool:
        raise PersistenceError("database is locked")

    async def mark_posted(self, article: Article) -> None:
        raise PersistenceError("database is locked")


@pytest.mark.asyncio
async def test_sql_ledger_round_trip(tmp_path) -> None:
    ledger = SqlPostedArticleLedger(f"sqlite:///{tmp_path / 'ledger.db'}")
    first = make("https://boardgamegeek.com/1", "First")

    assert await ledger.is_posted(first.url) is False
    await ledger.mark_posted(first)
    await ledger.mark_posted(first)
    await ledger.mark_posted(make("https://boardgamegeek.com/2", "Second"))

    assert await ledger.is_posted(first.url) is True
    recent = await ledger.recent(limit=10)
    assert sorted(post.url for post in recent) == [
        "https://boardgamegeek.com/1",
        "https://boardgamegeek.com/2",
    ]
    assert await ledger.purge_older_than(days=1) == 0
    assert await ledger.purge_older_than(days=-1) == 2
    assert await ledger.is_posted(first.url) is False
    ledger.dispose()


@pytest.mark.asyncio
async def test_unreachable_sql_ledger_raises_persistence_error(tmp_path) -> None:
    ledger = SqlPostedArticleLedger(f"sqlite:///{tmp_path / 'missing' / 'dir' / 'ledger.db'}")
    with pytest.raises(PersistenceError):
        await ledger.is_posted("https://boardgamegeek.com/1")


@pytest.mark.asyncio
async def test_filter_drops_posted_articles() -> None:
    ledger = InMemoryPostedArticleLedger({"https://x.com/posted"})
    posted_filter = PostedArticleFilter(ledger=ledger)

    result = await posted_filter.filter([make("https://x.com/posted"), make("https://x.com/new")])

    assert [a.url for a in result] == ["https://x.com/new"]


@pytest.mark.asyncio
async def test_filter_fails_open_when_ledger_is_down(tmp_path) -> None:
    articles = [make("https://x.com/1"), make("https://x.com/2")]

    assert await PostedArticleFilter(ledger=BrokenLedger()).filter(articles) == articles
    unreachable = SqlPostedArticleLedger(f"sqlite:///{tmp_path / 'nope' / 'ledger.db'}")
    assert await PostedArticleFilter(ledger=unreachable).filter(articles) == articles


@pytest.mark.asyncio
async def test_filter_without_ledger_passes_everything() -> None:
    articles = [make("https://x.com/1")]
    assert await PostedArticleFilter().filter(articles) == articles
