"""Tests for FastAPI lifecycle management.

These tests verify that:
- Startup builds the database manager, HTTP session and article fetcher
- Resources already on app.state are left untouched
- Shutdown releases the engine and the session
- The database health check reports failures instead of raising
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI

from backend.app.lifecycle import (
    check_db_health,
    lifespan,
    shutdown_resources,
    startup_resources,
)


def test_lifespan_context_manager_registers_correctly():
    app = FastAPI(lifespan=lifespan)
    assert app.router.lifespan_context is not None


@pytest.mark.asyncio
async def test_startup_builds_all_resources():
    with patch("backend.app.lifecycle.DatabaseManager") as mock_db_class:
        mock_db_class.return_value = MagicMock()

        app = FastAPI()
        await startup_resources(app)

        assert app.state.db_manager is mock_db_class.return_value
        assert app.state.http_session is not None
        assert app.state.article_fetcher is not None
        assert app.state.article_fetcher.fetcher.session is app.state.http_session
        assert app.state.ready is True

        await shutdown_resources(app)
        assert app.state.ready is False


@pytest.mark.asyncio
async def test_startup_keeps_provided_resources():
    app = FastAPI()
    provided_db = MagicMock()
    provided_session = MagicMock()
    provided_fetcher = MagicMock()
    app.state.db_manager = provided_db
    app.state.http_session = provided_session
    app.state.article_fetcher = provided_fetcher

    await startup_resources(app)

    assert app.state.db_manager is provided_db
    assert app.state.http_session is provided_session
    assert app.state.article_fetcher is provided_fetcher


@pytest.mark.asyncio
async def test_database_failure_still_serves_extraction():
    with patch(
        "backend.app.lifecycle.DatabaseManager", side_effect=RuntimeError("no database")
    ):
        app = FastAPI()
        await startup_resources(app)

    assert app.state.db_manager is None
    assert app.state.article_fetcher is not None
    assert app.state.article_fetcher.cache is None
    assert app.state.ready is True
    await shutdown_resources(app)


@pytest.mark.asyncio
async def test_fetcher_failure_marks_not_ready():
    with patch("backend.app.lifecycle.DatabaseManager"), patch(
        "backend.app.lifecycle.ArticleFetcher", side_effect=ValueError("bad strategies")
    ):
        app = FastAPI()
        await startup_resources(app)

    assert app.state.article_fetcher is None
    assert app.state.ready is False


@pytest.mark.asyncio
async def test_shutdown_releases_resources():
    app = FastAPI()
    app.state.db_manager = MagicMock()
    app.state.http_session = MagicMock()

    await shutdown_resources(app)

    app.state.db_manager.engine.dispose.assert_called_once()
    app.state.http_session.close.assert_called_once()


@pytest.mark.asyncio
async def test_shutdown_tolerates_cleanup_errors():
    app = FastAPI()
    app.state.db_manager = MagicMock()
    app.state.db_manager.engine.dispose.side_effect = RuntimeError("already closed")
    app.state.http_session = MagicMock()

    await shutdown_resources(app)

    app.state.http_session.close.assert_called_once()


def test_check_db_health(db):
    assert check_db_health(db) == (True, "Database connection OK")


def test_check_db_health_without_manager():
    healthy, message = check_db_health(None)
    assert healthy is False
    assert "not initialized" in message


def test_check_db_health_reports_errors():
    broken = MagicMock()
    broken.get_session.side_effect = RuntimeError("pool exhausted")

    healthy, message = check_db_health(broken)

    assert healthy is False
    assert "pool exhausted" in message
