"""Completeness scoring for extracted articles.

The score is an additive 0-100 rubric. It never raises and never leaves the
range, whatever the markup looks like.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


PLACEHOLDER_TITLE = "Untitled Article"

_READ_TIME_RE = re.compile(r"min read|minute|reading time", re.IGNORECASE)

# (exclusive lower bound, points), checked top-down
WORD_TIERS = ((2000, 30), (1000, 25), (500, 20), (300, 15), (100, 10), (50, 5))
PARAGRAPH_TIERS = ((10, 15), (5, 12), (3, 8), (1, 5))
IMAGE_TIERS = ((3, 10), (1, 7), (0, 5))
TITLE_TIERS = ((20, 25), (10, 20), (5, 15))


@dataclass(frozen=True)
class CompletenessReport:
    score: int
    indicators: dict = field(default_factory=dict)


def _tier(value: int, tiers) -> int:
    for threshold, points in tiers:
        if value > threshold:
            return points
    return 0


def count_words(text: str | None) -> int:
    return len(text.split()) if text else 0


def score_completeness(
    title: str | None,
    author: str | None,
    content: str | None,
    plain_text: str | None,
    html: str | None = None,
) -> CompletenessReport:
    """Score an extraction.

    Args:
        title: Extracted title (the placeholder title scores nothing)
        author: Extracted author, empty when unknown
        content: Sanitized body markup
        plain_text: Plain text derived from ``content``
        html: Raw page markup, only used for the reading-time marker

    Returns:
        CompletenessReport with the clamped score and the indicator counts
    """
    title = (title or "").strip()
    author = (author or "").strip()
    content = content or ""

    soup = BeautifulSoup(content, "html.parser")
    word_count = count_words(plain_text)
    paragraphs = len(soup.find_all("p"))
    headings = len(soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"]))
    images = sum(1 for img in soup.find_all("img") if (img.get("src") or "").strip())
    blockquotes = len(soup.find_all("blockquote"))
    lists = len(soup.find_all(["ul", "ol"]))
    links = sum(1 for a in soup.find_all("a") if (a.get("href") or "").strip())
    has_read_time = bool(html and _READ_TIME_RE.search(html))

    score = 0

    if title and title != PLACEHOLDER_TITLE:
        score += _tier(len(title), TITLE_TIERS)

    if len(author) > 2:
        score += 15 if 5 < len(author) < 50 else 10

    score += _tier(word_count, WORD_TIERS)
    score += _tier(paragraphs, PARAGRAPH_TIERS)
    if headings:
        score += 5

    score += _tier(images, IMAGE_TIERS)

    if has_read_time:
        score += 3
    if blockquotes:
        score += 3
    if lists:
        score += 2
    if links > 5:
        score += 2

    score = max(0, min(100, score))

    indicators = {
        "title_length": len(title),
        "author_length": len(author),
        "word_count": word_count,
        "paragraphs": paragraphs,
        "headings": headings,
        "images": images,
        "blockquotes": blockquotes,
        "lists": lists,
        "links": links,
        "read_time_marker": has_read_time,
    }
    logger.debug(f"Completeness score {score} ({indicators})")
    return CompletenessReport(score=score, indicators=indicators)
