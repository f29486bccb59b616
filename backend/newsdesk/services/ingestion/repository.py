"""
Article persistence: URL-keyed upserts and catalog queries.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from newsdesk.core.clock import as_utc
from newsdesk.models.database import Database, DBArticle, DBAuthor, DBCategory
from newsdesk.models.domain import ArticleRecord, StoredArticle

logger = structlog.get_logger(__name__)

SORTABLE_COLUMNS = {
    "title": DBArticle.title,
    "source": DBArticle.source,
    "published_at": DBArticle.published_at,
}


class ArticleRepository:
    """Stores articles, one per distinct URL, with their authors and categories."""

    def __init__(self, database: Database):
        self.database = database

    async def upsert(self, record: ArticleRecord) -> StoredArticle:
        """
        Create or update the article for record.url in one transaction.

        Scalar fields are overwritten. When the record names authors (or a
        category), the article's authors (or categories) are replaced by
        exactly that set. Any failure rolls the whole article back.
        """
        async with self.database.async_session() as session:
            async with session.begin():
                article = await self._locate(session, record.url)
                created = article is None
                if created:
                    article = DBArticle(url=record.url, authors=[], categories=[])
                    session.add(article)

                article.title = record.title
                article.description = record.description
                article.content = record.content
                article.source = record.source_label
                article.image_url = record.image_url
                article.published_at = record.published_at

                if record.author_names:
                    article.authors = [
                        await self._author(session, name) for name in record.author_names
                    ]

                if record.category_name:
                    article.categories = [await self._category(session, record.category_name)]

                await session.flush()
                stored = self._to_domain(article)

        logger.debug("Article upserted", url=record.url, created=created)
        return stored

    async def get_by_url(self, url: str) -> Optional[StoredArticle]:
        async with self.database.async_session() as session:
            article = await self._locate(session, url)
            return self._to_domain(article) if article else None

    async def count(self) -> int:
        async with self.database.async_session() as session:
            result = await session.execute(select(func.count(DBArticle.id)))
            return result.scalar_one()

    async def query(
        self,
        title: Optional[str] = None,
        source: Optional[str] = None,
        author: Optional[str] = None,
        published_on: Optional[date] = None,
        sort: str = "-published_at",
        page: int = 1,
        per_page: int = 15,
    ) -> tuple[list[StoredArticle], int]:
        """
        Filtered, sorted page of the catalog.

        Args:
            title: Case-insensitive substring of the title
            source: Exact source label
            author: Case-insensitive substring of any author name
            published_on: Calendar day (UTC) of publication
            sort: Column name, prefixed with "-" for descending order
            page: 1-based page number
            per_page: Page size

        Returns:
            Tuple of (articles on the page, total matching articles)
        """
        descending = sort.startswith("-")
        column = SORTABLE_COLUMNS.get(sort.lstrip("-"))
        if column is None:
            raise ValueError(f"Cannot sort by {sort!r}")

        stmt = select(DBArticle)
        if title:
            stmt = stmt.where(DBArticle.title.ilike(f"%{title}%"))
        if source:
            stmt = stmt.where(DBArticle.source == source)
        if author:
            stmt = stmt.where(DBArticle.authors.any(DBAuthor.name.ilike(f"%{author}%")))
        if published_on:
            start = datetime.combine(published_on, time.min, tzinfo=timezone.utc)
            stmt = stmt.where(
                DBArticle.published_at >= start,
                DBArticle.published_at < start + timedelta(days=1),
            )

        async with self.database.async_session() as session:
            total = (
                await session.execute(select(func.count()).select_from(stmt.subquery()))
            ).scalar_one()

            ordered = column.desc() if descending else column.asc()
            result = await session.execute(
                stmt.options(selectinload(DBArticle.authors), selectinload(DBArticle.categories))
                .order_by(ordered, DBArticle.id.desc())
                .offset((page - 1) * per_page)
                .limit(per_page)
            )
            articles = [self._to_domain(a) for a in result.scalars()]

        return articles, total

    async def _locate(self, session: AsyncSession, url: str) -> Optional[DBArticle]:
        result = await session.execute(
            select(DBArticle)
            .where(DBArticle.url == url)
            .options(selectinload(DBArticle.authors), selectinload(DBArticle.categories))
        )
        return result.scalar_one_or_none()

    async def _author(self, session: AsyncSession, name: str) -> DBAuthor:
        result = await session.execute(select(DBAuthor).where(DBAuthor.name == name))
        author = result.scalar_one_or_none()
        if author is None:
            author = DBAuthor(name=name)
            session.add(author)
        return author

    async def _category(self, session: AsyncSession, name: str) -> DBCategory:
        result = await session.execute(select(DBCategory).where(DBCategory.name == name))
        category = result.scalar_one_or_none()
        if category is None:
            category = DBCategory(name=name)
            session.add(category)
        return category

    @staticmethod
    def _to_domain(article: DBArticle) -> StoredArticle:
        return StoredArticle(
            id=article.id,
            url=article.url,
            title=article.title,
            description=article.description,
            content=article.content,
            source=article.source,
            image_url=article.image_url,
            published_at=as_utc(article.published_at),
            authors=[a.name for a in article.authors],
            categories=[c.name for c in article.categories],
            created_at=as_utc(article.created_at) if article.created_at else None,
            updated_at=as_utc(article.updated_at) if article.updated_at else None,
        )
