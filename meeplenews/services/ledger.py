from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

from sqlalchemy import DateTime, Integer, String, Text, create_engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from ..errors import PersistenceError
from ..models.news import Article

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class NewsPost(Base):
    __tablename__ = "news_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False, unique=True, index=True)
    description: Mapped[str] = mapped_column(Text, default="")
    posted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class PostedArticleLedger(ABC):
    """Record of article URLs already delivered."""

    @abstractmethod
    async def is_posted(self, url: str) -> bool: ...

    @abstractmethod
    async def mark_posted(self, article: Article) -> None: ...


class InMemoryPostedArticleLedger(PostedArticleLedger):
    def __init__(self, urls: Iterable[str] = ()) -> None:
        self.urls: set[str] = set(urls)

    async def is_posted(self, url: str) -> bool:
        return url in self.urls

    async def mark_posted(self, article: Article) -> None:
        self.urls.add(article.url)


class SqlPostedArticleLedger(PostedArticleLedger):
    """``news_posts`` table behind SQLAlchemy; blocking calls run in a worker thread."""

    def __init__(self, database_url: str) -> None:
        self.engine = create_engine(database_url, future=True)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._ready = False

    def init_db(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not create news_posts table: {exc}") from exc
        self._ready = True

    @contextmanager
    def session(self) -> Iterator[Session]:
        if not self._ready:
            self.init_db()
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Ledger operation failed: %s", exc)
            raise PersistenceError(str(exc)) from exc
        finally:
            session.close()

    def _is_posted(self, url: str) -> bool:
        with self.session() as session:
            found = session.scalar(select(NewsPost.id).where(NewsPost.url == url).limit(1))
            return found is not None

    def _mark_posted(self, article: Article) -> None:
        with self.session() as session:
            exists = session.scalar(select(NewsPost.id).where(NewsPost.url == article.url))
            if exists is None:
                session.add(
                    NewsPost(title=article.title, url=article.url, description=article.description)
                )

    def _recent(self, limit: int) -> list[NewsPost]:
        with self.session() as session:
            stmt = select(NewsPost).order_by(NewsPost.posted_at.desc(), NewsPost.id.desc()).limit(limit)
            return list(session.scalars(stmt))

    def _purge_older_than(self, days: int) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        with self.session() as session:
            result = session.execute(delete(NewsPost).where(NewsPost.posted_at < cutoff))
            return result.rowcount or 0

    async def is_posted(self, url: str) -> bool:
        return await asyncio.to_thread(self._is_posted, url)

    async def mark_posted(self, article: Article) -> None:
        await asyncio.to_thread(self._mark_posted, article)

    async def recent(self, limit: int = 10) -> list[NewsPost]:
        return await asyncio.to_thread(self._recent, limit)

    async def purge_older_than(self, days: int = 30) -> int:
        deleted = await asyncio.to_thread(self._purge_older_than, days)
        logger.info("Purged %d posted article(s) older than %d day(s)", deleted, days)
        return deleted

    def dispose(self) -> None:
        self.engine.dispose()
