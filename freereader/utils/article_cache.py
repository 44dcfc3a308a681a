"""TTL cache of successful extractions, keyed by the exact original URL."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from freereader import config
from freereader.crawler import CacheWriteFailure
from freereader.models import ArticleCacheEntry, utcnow
from freereader.models.database import DatabaseManager, _commit_with_retry, upsert

from .extraction_outcomes import ExtractionResult

logger = logging.getLogger(__name__)


_UPSERT_COLUMNS = (
    "title",
    "author",
    "content",
    "plain_text",
    "word_count",
    "reading_time",
    "extraction_method",
    "completeness_score",
    "metadata",
    "created_at",
    "expires_at",
)


class ArticleCache:
    """Read/write access to the ``article_cache`` table."""

    def __init__(
        self,
        db: DatabaseManager,
        ttl_days: int | None = None,
        min_score: int | None = None,
    ):
        self.db = db
        self.ttl = timedelta(days=config.CACHE_TTL_DAYS if ttl_days is None else ttl_days)
        self.min_score = config.SUCCESS_THRESHOLD if min_score is None else min_score

    def get(self, url: str) -> Optional[ExtractionResult]:
        """Return the cached result for ``url`` while it is unexpired."""
        with self.db.get_session() as session:
            entry = session.execute(
                select(ArticleCacheEntry).where(
                    ArticleCacheEntry.url == url,
                    ArticleCacheEntry.expires_at > utcnow(),
                )
            ).scalar_one_or_none()

            if entry is None:
                return None

            return ExtractionResult(
                title=entry.title,
                author=entry.author or "",
                content=entry.content,
                plain_text=entry.plain_text or "",
                word_count=entry.word_count or 0,
                reading_time=entry.reading_time or 1,
                completeness_score=entry.completeness_score,
                method=entry.extraction_method,
                metadata=entry.meta or {},
            )

    def store(self, url: str, result: ExtractionResult) -> None:
        """Upsert ``result`` for ``url``; the last successful write wins.

        Raises:
            ValueError: ``result`` scored below the success threshold
            CacheWriteFailure: the database rejected the write
        """
        if result.completeness_score < self.min_score:
            raise ValueError(
                f"Refusing to cache score {result.completeness_score} "
                f"(< {self.min_score}) for {url}"
            )

        now = utcnow()
        values = {
            "url": url,
            "title": result.title,
            "author": result.author,
            "content": result.content,
            "plain_text": result.plain_text,
            "word_count": result.word_count,
            "reading_time": result.reading_time,
            "extraction_method": result.method,
            "completeness_score": result.completeness_score,
            "metadata": dict(result.metadata),
            "created_at": now,
            "expires_at": now + self.ttl,
        }

        try:
            with self.db.get_session() as session:
                upsert(
                    session,
                    ArticleCacheEntry.__table__,
                    values,
                    index_elements=["url"],
                    set_=lambda stmt: {
                        column: stmt.excluded[column] for column in _UPSERT_COLUMNS
                    },
                )
                _commit_with_retry(session)
        except SQLAlchemyError as e:
            raise CacheWriteFailure(f"Failed to cache {url}: {e}") from e

        logger.debug(f"Cached {url} until {values['expires_at']:%Y-%m-%d %H:%M}")

    def count_expired(self) -> int:
        with self.db.get_session() as session:
            return session.execute(
                select(func.count())
                .select_from(ArticleCacheEntry)
                .where(ArticleCacheEntry.expires_at <= utcnow())
            ).scalar_one()

    def sweep_expired(self) -> int:
        """Delete rows past expiry and return how many were removed.

        A single DELETE statement, so concurrent sweeps simply find nothing
        left to delete.
        """
        with self.db.get_session() as session:
            result = session.execute(
                delete(ArticleCacheEntry).where(ArticleCacheEntry.expires_at <= utcnow())
            )
            _commit_with_retry(session)
            deleted = result.rowcount or 0

        if deleted:
            logger.info(f"Swept {deleted} expired cache entries")
        return deleted
