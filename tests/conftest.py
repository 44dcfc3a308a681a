"""Pytest-wide fixtures for freereader tests."""

from __future__ import annotations

import os
import tempfile

import pytest

# Set BEFORE any import of freereader.config so a throwaway SQLite file is
# used and retries never sleep.
if "DATABASE_URL" not in os.environ:
    _test_db_path = os.path.join(tempfile.gettempdir(), "test_freereader.db")
    os.environ["DATABASE_URL"] = f"sqlite:///{_test_db_path}"
os.environ.setdefault("BACKOFF_BASE_SECONDS", "0")
os.environ.pop("STRATEGIES_FILE", None)

from freereader.crawler.fetcher import FetchResponse  # noqa: E402
from freereader.crawler.strategies import ExtractionStrategy  # noqa: E402
from freereader.models.database import DatabaseManager  # noqa: E402

ARTICLE_URL = "https://medium.com/@alice/my-post-abc123"
ARTICLE_TITLE = "Understanding Python Internals"  # 30 characters


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_database():
    """Remove the shared SQLite file after the session."""
    yield
    path = os.path.join(tempfile.gettempdir(), "test_freereader.db")
    if os.path.exists(path):
        try:
            os.remove(path)
        except OSError:
            pass


@pytest.fixture
def db(tmp_path):
    """DatabaseManager on a fresh SQLite file."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'freereader.db'}")
    yield manager
    manager.close()


def build_article_html(
    title: str = ARTICLE_TITLE,
    author: str = "Alice Johnson",
    paragraphs: int = 12,
    words_per_paragraph: int = 100,
    images: int = 2,
    extra_body: str = "",
) -> str:
    """Mirror-like page with a storyTitle heading, an author link and an article."""
    body = "".join(
        f"<p>{' '.join(['lorem'] * words_per_paragraph)}</p>" for _ in range(paragraphs)
    )
    body += "".join(
        f'<img src="https://cdn.example.com/{i}.png" alt="figure {i}">'
        for i in range(images)
    )
    author_html = (
        f'<a data-testid="authorName" href="/@alice">{author}</a>' if author else ""
    )
    return (
        "<html><head>"
        f"<title>{title} | Medium</title>"
        '<script>window.__APOLLO_STATE__ = {"x": 1};</script>'
        "</head><body>"
        '<nav class="metabar"><a href="/">Home</a></nav>'
        f'<h1 data-testid="storyTitle">{title}</h1>'
        f"{author_html}"
        f"<article>{body}{extra_body}</article>"
        "<footer>Footer links</footer>"
        "</body></html>"
    )


@pytest.fixture
def article_html():
    return build_article_html()


@pytest.fixture
def make_article_html():
    return build_article_html


@pytest.fixture
def fetch_response():
    def _make(html: str, url: str = "https://mirror.test/page") -> FetchResponse:
        return FetchResponse(html=html, status_code=200, elapsed_ms=12.0, final_url=url)

    return _make


@pytest.fixture
def test_strategies():
    """Three fast single-attempt strategies on distinct mirror hosts."""
    return [
        ExtractionStrategy("mirror-a", "https://mirror-a.test/{url}", timeout=5),
        ExtractionStrategy("mirror-b", "https://mirror-b.test/{url}", timeout=5),
        ExtractionStrategy("mirror-c", "https://mirror-c.test/{path}", timeout=5),
    ]
