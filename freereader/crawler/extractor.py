"""Heuristic title/author/body extraction from mirror markup."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup, Tag

from freereader import config
from freereader.utils.content_sanitizer import (
    clean_text,
    html_to_plain_text,
    sanitize_html,
)

from . import InsufficientText

logger = logging.getLogger(__name__)


DEFAULT_TITLE = "Untitled Article"

MIN_CANDIDATE_TEXT_CHARS = 300
MIN_CANDIDATE_MARKUP_CHARS = 1000

AUTHOR_BLACKLIST = frozenset(
    {
        "follow",
        "subscribe",
        "share",
        "read",
        "more",
        "continue",
        "click",
        "here",
        "medium",
        "freedium",
        "scribe",
    }
)

_TITLE_SUFFIX_RE = re.compile(
    r"\s*(\|\s*by\s.*|-\s*Freedium|\|\s*Medium|-\s*Medium|\|\s*Scribe|-\s*Scribe)\s*$",
    re.IGNORECASE,
)
_BY_LINK_RE = re.compile(r"\bby\s+<a[^>]*>([^<]+)</a>", re.IGNORECASE)
_BY_TEXT_RE = re.compile(r"\bBy\s+([A-Za-z][A-Za-z .'-]{2,29})")

# (tag, attrs, attribute holding the value or None for element text)
TITLE_SELECTORS: list[tuple[str, dict, Optional[str]]] = [
    ("h1", {"data-testid": "storyTitle"}, None),
    ("h1", {"class": re.compile(r"graf--title|story-title|post-title")}, None),
    ("h1", {"class": re.compile(r"title|heading|headline", re.IGNORECASE)}, None),
    ("h1", {"id": re.compile(r"title", re.IGNORECASE)}, None),
    ("h1", {}, None),
    ("meta", {"property": "og:title"}, "content"),
    ("meta", {"name": "twitter:title"}, "content"),
    ("meta", {"property": "article:title"}, "content"),
    ("title", {}, None),
]

AUTHOR_SELECTORS: list[tuple[str, dict, Optional[str]]] = [
    ("a", {"data-testid": "authorName"}, None),
    ("span", {"data-testid": "authorName"}, None),
    ("div.author a", {}, None),
    ("a", {"class": re.compile(r"author", re.IGNORECASE)}, None),
    ("span", {"class": re.compile(r"author", re.IGNORECASE)}, None),
    ("div", {"class": re.compile(r"author", re.IGNORECASE)}, None),
    ("meta", {"name": "author"}, "content"),
    ("meta", {"property": "article:author"}, "content"),
]

# Every match of every selector competes; see ContentExtractor._score_candidate
CONTENT_SELECTORS: list[str] = [
    'article[data-testid="storyContent"]',
    "div.postArticle-content",
    'section[data-field="body"]',
    "article.story",
    "div.story-content",
    "article",
    "div.post-content",
    "div.article-content",
    "div.main-content",
    "div.entry-content",
    "div.content-body",
    "section.post",
    "section.article",
    "section.story",
    "section.content",
    "section.body",
    "section.main",
    "main.content",
    "main.article",
    "main.story",
    "main",
]

_NON_VISIBLE_TAGS = ("script", "style", "noscript", "template")


@dataclass(frozen=True)
class ExtractedContent:
    """Fields pulled out of one page, body already sanitized."""

    title: str
    author: str
    content: str
    plain_text: str


class ContentExtractor:
    """Derive title, author and sanitized body from raw page markup."""

    def __init__(self, min_visible_text_chars: int | None = None):
        self.min_visible_text_chars = (
            config.MIN_VISIBLE_TEXT_CHARS
            if min_visible_text_chars is None
            else min_visible_text_chars
        )

    def extract(self, html: str) -> ExtractedContent:
        """Run the title, author and content cascades over ``html``.

        Raises:
            InsufficientText: the page carries almost no visible text
        """
        soup = BeautifulSoup(html or "", "html.parser")
        for element in soup(_NON_VISIBLE_TAGS):
            element.decompose()

        visible = soup.get_text(" ", strip=True)
        if len(visible) < self.min_visible_text_chars:
            raise InsufficientText(
                f"Insufficient text content ({len(visible)} chars)"
            )

        title = self._extract_title(soup)
        author = self._extract_author(soup, html or "")
        content = sanitize_html(self._extract_content(soup))
        plain_text = html_to_plain_text(content)

        logger.debug(
            f"Extracted title='{title[:60]}' author='{author}' "
            f"content={len(content)} chars"
        )
        return ExtractedContent(
            title=title, author=author, content=content, plain_text=plain_text
        )

    @staticmethod
    def _selector_value(
        soup: BeautifulSoup, tag: str, attrs: dict, attribute: Optional[str]
    ) -> Optional[str]:
        if " " in tag or "." in tag:
            element = soup.select_one(tag)
        else:
            element = soup.find(tag, attrs=attrs)
        if not isinstance(element, Tag):
            return None
        if attribute:
            value = element.get(attribute)
            return str(value) if value else None
        return element.get_text(" ", strip=True)

    def _extract_title(self, soup: BeautifulSoup) -> str:
        title = DEFAULT_TITLE
        for tag, attrs, attribute in TITLE_SELECTORS:
            raw = self._selector_value(soup, tag, attrs, attribute)
            if not raw or len(raw.strip()) <= 5:
                continue

            cleaned = _TITLE_SUFFIX_RE.sub("", clean_text(raw)).strip()
            if not cleaned:
                continue
            title = cleaned
            if len(cleaned) > 10:
                break
        return title

    @staticmethod
    def _acceptable_author(candidate: Optional[str]) -> Optional[str]:
        if not candidate:
            return None
        cleaned = clean_text(candidate)
        if not 2 < len(cleaned) < 50:
            return None
        if cleaned.lower() in AUTHOR_BLACKLIST:
            return None
        return cleaned

    def _extract_author(self, soup: BeautifulSoup, html: str) -> str:
        for tag, attrs, attribute in AUTHOR_SELECTORS:
            author = self._acceptable_author(
                self._selector_value(soup, tag, attrs, attribute)
            )
            if author:
                return author

        # Inline bylines
        match = _BY_LINK_RE.search(html)
        if match:
            author = self._acceptable_author(match.group(1))
            if author:
                return author

        match = _BY_TEXT_RE.search(soup.get_text(" ", strip=True))
        if match:
            author = self._acceptable_author(match.group(1))
            if author:
                return author

        address = soup.find("address")
        if isinstance(address, Tag):
            author = self._acceptable_author(address.get_text(" ", strip=True))
            if author:
                return author

        return ""

    @staticmethod
    def _score_candidate(element: Tag) -> tuple[int, int]:
        """Return (score, text length); score favours paragraph-rich blocks."""
        text_length = len(element.get_text(" ", strip=True))
        paragraphs = len(element.find_all("p"))
        return text_length + paragraphs * 100, text_length

    def _candidates(self, soup: BeautifulSoup) -> list[Tag]:
        seen: set[int] = set()
        candidates: list[Tag] = []
        for selector in CONTENT_SELECTORS:
            for element in soup.select(selector):
                if id(element) not in seen:
                    seen.add(id(element))
                    candidates.append(element)

        # Last rule: a div holding its own run of paragraphs
        for element in soup.find_all("div"):
            if id(element) in seen:
                continue
            if len(element.find_all("p", recursive=False)) >= 3:
                seen.add(id(element))
                candidates.append(element)
        return candidates

    def _extract_content(self, soup: BeautifulSoup) -> str:
        best_markup = ""
        best_score = -1
        for element in self._candidates(soup):
            score, text_length = self._score_candidate(element)
            if text_length <= MIN_CANDIDATE_TEXT_CHARS:
                continue
            if score > best_score:
                best_score = score
                best_markup = element.decode_contents()

        if len(best_markup) < MIN_CANDIDATE_MARKUP_CHARS:
            body = soup.find("body")
            fallback = body.decode_contents() if isinstance(body, Tag) else str(soup)
            logger.debug("No substantial content block found, falling back to body")
            return fallback

        return best_markup
