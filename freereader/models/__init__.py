"""SQLAlchemy database models for freereader."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, sessionmaker

Base: Any = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, comparable with values read back from SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ArticleCacheEntry(Base):
    """Successful extraction cached by original article URL."""

    __tablename__ = "article_cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url = Column(String, unique=True, nullable=False)
    title = Column(Text, nullable=False)
    author = Column(String)
    content = Column(Text, nullable=False)
    plain_text = Column(Text)
    word_count = Column(Integer, default=0)
    reading_time = Column(Integer, default=1)
    extraction_method = Column(String, nullable=False)
    completeness_score = Column(Integer, nullable=False)
    meta: Mapped[dict | None] = mapped_column("metadata", JSON)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    __table_args__ = (Index("ix_article_cache_expires_at", "expires_at"),)

    def __repr__(self):
        return f"<ArticleCacheEntry(url='{self.url}', expires_at={self.expires_at})>"


class ExtractionLog(Base):
    """Append-only record of one extraction attempt."""

    __tablename__ = "extraction_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url = Column(String, nullable=False)
    attempt_number = Column(Integer, nullable=False, default=1)
    method = Column(String, nullable=False)
    status = Column(String, nullable=False)  # success, partial, failed
    error_message = Column(Text)
    response_time_ms = Column(Float)
    content_length = Column(Integer)
    completeness_score = Column(Integer)
    completeness_indicators: Mapped[dict | None] = mapped_column(JSON)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_extraction_logs_url", "url"),
        Index("ix_extraction_logs_created_at", "created_at"),
        Index("ix_extraction_logs_status", "status"),
    )

    def __repr__(self):
        return (
            f"<ExtractionLog(url='{self.url}', method='{self.method}', "
            f"status='{self.status}')>"
        )


class UrlReliability(Base):
    """Rolling attempt/success/latency statistics per domain."""

    __tablename__ = "url_reliability"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url_pattern = Column(String, unique=True, nullable=False)
    total_attempts = Column(Integer, nullable=False, default=0)
    successful_attempts = Column(Integer, nullable=False, default=0)
    # Most recent successful method, not the historically best one
    best_method = Column(String)
    average_response_time_ms = Column(Float, nullable=False, default=0.0)
    last_success_at = Column(DateTime)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def success_rate(self) -> float:
        if not self.total_attempts:
            return 0.0
        return self.successful_attempts / self.total_attempts * 100

    def __repr__(self):
        return (
            f"<UrlReliability(url_pattern='{self.url_pattern}', "
            f"{self.successful_attempts}/{self.total_attempts})>"
        )


# Database utilities


def create_database_engine(database_url: str = "sqlite:///data/freereader.db"):
    """Create SQLAlchemy engine with proper configuration."""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
        )
    else:
        engine = create_engine(
            database_url,
            pool_size=10,
            max_overflow=20,
            pool_timeout=30,
            pool_pre_ping=True,
            echo=False,
        )

    return engine


def create_tables(engine):
    """Create all tables in the database."""
    Base.metadata.create_all(engine)
