"""FastAPI lifecycle management for shared resources.

This module centralizes startup and shutdown handling for:
- DatabaseManager (engine/connection pool backing cache, logs and reliability)
- HTTP Session (keep-alive pool shared by every extraction)
- ArticleFetcher (strategy loop wired to the two above)

Tests may pre-populate any of these on ``app.state``; startup leaves
provided resources untouched.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import requests
from fastapi import FastAPI, Request
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from freereader import config as app_config
from freereader.crawler.fetcher import Fetcher
from freereader.crawler.orchestrator import ArticleFetcher
from freereader.models.database import DatabaseManager

logger = logging.getLogger(__name__)


def _missing(app: FastAPI, name: str) -> bool:
    return getattr(app.state, name, None) is None


async def startup_resources(app: FastAPI) -> None:
    """Initialize shared resources for the FastAPI app.

    Args:
        app: The FastAPI application instance
    """
    logger.info("Starting resource initialization...")

    # 1. DatabaseManager
    try:
        if _missing(app, "db_manager"):
            app.state.db_manager = DatabaseManager(app_config.DATABASE_URL)
            logger.info(
                f"DatabaseManager initialized: {app_config.DATABASE_URL[:50]}..."
            )
        else:
            logger.info("DatabaseManager already provided on app.state; skipping init")
    except Exception as exc:
        logger.exception("Failed to initialize DatabaseManager", exc_info=exc)
        # Extraction still works without persistence
        app.state.db_manager = None

    # 2. Shared HTTP session
    if _missing(app, "http_session"):
        app.state.http_session = requests.Session()
        logger.info("HTTP session initialized")
    else:
        logger.info("HTTP session already provided on app.state; skipping init")

    # 3. ArticleFetcher
    try:
        if _missing(app, "article_fetcher"):
            app.state.article_fetcher = ArticleFetcher(
                db=app.state.db_manager,
                fetcher=Fetcher(session=app.state.http_session),
            )
            logger.info(
                f"ArticleFetcher initialized with "
                f"{len(app.state.article_fetcher.strategies)} strategies"
            )
    except Exception as exc:
        logger.exception("Failed to initialize ArticleFetcher", exc_info=exc)
        app.state.article_fetcher = None

    app.state.ready = app.state.article_fetcher is not None
    logger.info("All resources initialized, app is ready")


async def shutdown_resources(app: FastAPI) -> None:
    """Clean up shared resources gracefully.

    Args:
        app: The FastAPI application instance
    """
    logger.info("Starting resource cleanup...")

    if getattr(app.state, "db_manager", None):
        try:
            logger.info("Disposing DatabaseManager engine...")
            app.state.db_manager.engine.dispose()
        except Exception as exc:
            logger.exception("Error disposing DatabaseManager", exc_info=exc)

    # Closing the session also releases the fetcher's pool
    if getattr(app.state, "http_session", None):
        try:
            logger.info("Closing HTTP session...")
            app.state.http_session.close()
        except Exception as exc:
            logger.exception("Error closing HTTP session", exc_info=exc)

    app.state.ready = False
    logger.info("Resource cleanup complete")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize resources on startup and release them on shutdown."""
    await startup_resources(app)
    yield
    await shutdown_resources(app)


# Dependency injection functions for route handlers


def get_db_manager(request: Request) -> Optional[DatabaseManager]:
    """Shared DatabaseManager, or None when the database is unavailable."""
    return getattr(request.app.state, "db_manager", None)


def get_article_fetcher(request: Request) -> Optional[ArticleFetcher]:
    """Shared ArticleFetcher. Tests can override this dependency."""
    return getattr(request.app.state, "article_fetcher", None)


def check_db_health(db_manager: Optional[DatabaseManager]) -> tuple[bool, str]:
    """Perform a lightweight database health check.

    Returns:
        Tuple of (is_healthy, message)
    """
    if db_manager is None:
        return False, "DatabaseManager not initialized"

    try:
        with db_manager.get_session() as session:
            session.execute(text("SELECT 1"))
        return True, "Database connection OK"
    except OperationalError as exc:
        return False, f"Database connection failed: {exc}"
    except Exception as exc:
        return False, f"Database health check error: {exc}"
