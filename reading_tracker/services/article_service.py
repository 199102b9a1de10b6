# reading_tracker/services/article_service.py
"""Pages saved from the browser extension, ranked by how often they are reopened."""
from sqlalchemy import select, func, case, or_
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Union
from urllib.parse import urlparse
import logging
import math

from reading_tracker import config
from reading_tracker.database import Database, StorageError, StoreResult, storage_failure
from reading_tracker.models import Article
from reading_tracker.schemas import ArticleCreate, ArticleResponse, ArticleStats

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200


def extract_domain(url: str) -> Optional[str]:
    try:
        return urlparse(url).hostname
    except ValueError:
        logger.warning(f"Invalid URL: {url}")
        return None


class ArticleService:
    def __init__(self, database: Database):
        self.database = database

    async def save_article(
        self,
        article: Union[ArticleCreate, dict],
        on_error: Optional[Callable[[StorageError], None]] = None
    ) -> StoreResult[Article]:
        """Save a page, or refresh the saved copy of a known URL.

        Saving a known URL again replaces its metadata and saved_at but keeps
        click_count and last_clicked_at.
        """
        if isinstance(article, dict):
            try:
                article = ArticleCreate(**article)
            except ValidationError as e:
                logger.warning(f"Ignoring malformed article: {e.errors()}")
                return StoreResult.success(None)
        if not article.url or not article.url.strip():
            logger.warning("Ignoring article without a URL")
            return StoreResult.success(None)

        url = article.url.strip()
        word_count = article.word_count
        if word_count is None and article.text_content:
            word_count = len(article.text_content.split())
        reading_time = article.reading_time
        if reading_time is None and word_count:
            reading_time = max(1, math.ceil(word_count / WORDS_PER_MINUTE))

        values = {
            "title": (article.title or "").strip() or "Untitled",
            "domain": extract_domain(url),
            "author": article.author,
            "publish_date": article.publish_date,
            "description": article.description,
            "content": article.content,
            "text_content": article.text_content,
            "word_count": word_count,
            "reading_time": reading_time,
            "tags": article.tags,
            "notes": article.notes,
            "saved_at": datetime.utcnow(),
        }
        stmt = insert(Article).values(url=url, click_count=0, **values).on_conflict_do_update(
            index_elements=[Article.url],
            set_=values
        )

        try:
            async with self.database.session() as session:
                await session.execute(stmt)
                await session.commit()
                result = await session.execute(select(Article).where(Article.url == url))
                saved = result.scalar_one()
        except (StorageError, SQLAlchemyError) as e:
            return storage_failure(f"saving article {url}", e, on_error)

        logger.info(f"Article saved with ID: {saved.id}")
        return StoreResult.success(saved)

    async def list_articles(self, limit: int = 50, offset: int = 0) -> List[ArticleResponse]:
        """Most reopened first, then newest saved."""
        stmt = (
            select(Article)
            .order_by(Article.click_count.desc(), Article.saved_at.desc(), Article.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return await self._articles(stmt)

    async def get_article(self, article_id: int) -> Optional[Article]:
        try:
            async with self.database.session() as session:
                return await session.get(Article, article_id)
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not load article {article_id}: {e}")
            return None

    async def search_articles(self, query: Optional[str], limit: Optional[int] = None) -> List[ArticleResponse]:
        """Keyword search over title, author, description, body text and tags."""
        query = (query or "").strip()
        if not query:
            return []

        pattern = f"%{query}%"
        stmt = (
            select(Article)
            .where(
                or_(
                    Article.title.ilike(pattern),
                    Article.author.ilike(pattern),
                    Article.description.ilike(pattern),
                    Article.text_content.ilike(pattern),
                    Article.tags.ilike(pattern)
                )
            )
            .order_by(Article.click_count.desc(), Article.saved_at.desc())
            .limit(limit or config.SEARCH_RESULT_LIMIT)
        )
        return await self._articles(stmt)

    async def article_stats(self) -> ArticleStats:
        now = datetime.utcnow()
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)
        stmt = select(
            func.count(Article.id),
            func.coalesce(func.sum(Article.word_count), 0),
            func.avg(Article.word_count),
            func.coalesce(func.sum(case((Article.saved_at > week_ago, 1), else_=0)), 0),
            func.coalesce(func.sum(case((Article.saved_at > month_ago, 1), else_=0)), 0),
        )
        try:
            async with self.database.session() as session:
                total, words, avg_words, week, month = (await session.execute(stmt)).one()
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not compute article stats: {e}")
            return ArticleStats()

        return ArticleStats(
            total_articles=total,
            total_words=words,
            avg_words=round(avg_words or 0, 2),
            week_articles=week,
            month_articles=month,
        )

    async def track_article_click(
        self,
        article_id: int,
        on_error: Optional[Callable[[StorageError], None]] = None
    ) -> StoreResult[Article]:
        """Count one reopening of a saved article. Unknown ids are a no-op."""
        try:
            async with self.database.session() as session:
                article = await session.get(Article, article_id)
                if article is None:
                    logger.info(f"Not tracking click on unknown article {article_id}")
                    return StoreResult.success(None)
                article.click_count = (article.click_count or 0) + 1
                article.last_clicked_at = datetime.utcnow()
                await session.commit()
                return StoreResult.success(article)
        except (StorageError, SQLAlchemyError) as e:
            return storage_failure(f"tracking click on article {article_id}", e, on_error)

    async def _articles(self, stmt) -> List[ArticleResponse]:
        try:
            async with self.database.session() as session:
                rows = (await session.execute(stmt)).scalars().all()
                return [ArticleResponse.model_validate(row) for row in rows]
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not list articles: {e}")
            return []
