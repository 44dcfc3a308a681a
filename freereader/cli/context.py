"""Shared CLI helpers."""

from __future__ import annotations

import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for CLI commands."""
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    # Connection pool chatter drowns out attempt logs at DEBUG
    logging.getLogger("urllib3").setLevel(max(log_level, logging.INFO))


def build_article_fetcher(db=None):
    """Construct an ArticleFetcher wired to ``db`` (imported lazily)."""
    from freereader.crawler.orchestrator import ArticleFetcher

    return ArticleFetcher(db=db)
