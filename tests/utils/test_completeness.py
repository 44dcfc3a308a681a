"""Tests for the completeness rubric."""

import pytest

from freereader.utils.content_sanitizer import html_to_plain_text
from freereader.utils.completeness import count_words, score_completeness

TITLE_30 = "Understanding Python Internals"


def _content(paragraphs=12, words=100, images=2, extra=""):
    body = "".join(f"<p>{' '.join(['lorem'] * words)}</p>" for _ in range(paragraphs))
    body += "".join(f'<img src="https://cdn.example.com/{i}.png">' for i in range(images))
    return body + extra


def _score(title=TITLE_30, author="Alice Johnson", content=None, html=""):
    content = _content() if content is None else content
    return score_completeness(title, author, content, html_to_plain_text(content), html)


def test_reference_article_scores_87():
    report = _score()

    # title 25 + author 15 + words 25 + paragraphs 15 + images 7
    assert report.score == 87
    assert report.indicators["word_count"] == 1200
    assert report.indicators["paragraphs"] == 12
    assert report.indicators["images"] == 2


def test_everything_present_is_clamped_to_100():
    extra = (
        "<h2>Section</h2><blockquote>quote</blockquote><ul><li>item</li></ul>"
        + "".join(f'<a href="https://example.com/{i}">link</a>' for i in range(6))
    )
    content = _content(paragraphs=12, words=250, images=4, extra=extra)

    report = _score(content=content, html="<span>5 min read</span>")

    assert report.score == 100


def test_empty_extraction_scores_zero():
    report = score_completeness("", "", "", "", "")
    assert report.score == 0


def test_none_inputs_score_zero():
    assert score_completeness(None, None, None, None, None).score == 0


def test_placeholder_title_scores_nothing():
    with_title = _score()
    placeholder = _score(title="Untitled Article")
    assert with_title.score - placeholder.score == 25


@pytest.mark.parametrize(
    "title,points",
    [("A" * 21, 25), ("A" * 11, 20), ("A" * 6, 15), ("A" * 5, 0)],
)
def test_title_tiers(title, points):
    base = _score(title="").score
    assert _score(title=title).score - base == points


@pytest.mark.parametrize(
    "author,points",
    [("Alice Johnson", 15), ("Bob", 10), ("Al", 0), ("", 0), ("X" * 60, 10)],
)
def test_author_tiers(author, points):
    base = _score(author="").score
    assert _score(author=author).score - base == points


@pytest.mark.parametrize(
    "words,points",
    [(2001, 30), (1001, 25), (501, 20), (301, 15), (101, 10), (51, 5), (50, 0)],
)
def test_word_tiers(words, points):
    content = f"<div>{' '.join(['w'] * words)}</div>"
    report = _score(title="", author="", content=content)
    assert report.score == points


def test_read_time_marker_bonus_uses_raw_markup():
    without = _score()
    with_marker = _score(html="<span>6 min read</span>")
    assert with_marker.score - without.score == 3


def test_images_without_src_ignored():
    content = _content(images=0) + '<img src=""><img alt="x">'
    assert _score(content=content).indicators["images"] == 0


@pytest.mark.parametrize(
    "content",
    [
        "<p>" * 5000,
        "<div>" * 2000 + "text" + "</div>" * 2000,
        "<img src=x>" * 5000 + "<p>word</p>" * 5000 + "<blockquote>" * 500,
        "<<<<>>>>" * 2000,
    ],
)
def test_pathological_markup_stays_in_range(content):
    report = score_completeness("T" * 500, "A" * 500, content, "word " * 100000, content)
    assert 0 <= report.score <= 100


def test_count_words():
    assert count_words("  one two\nthree  ") == 3
    assert count_words("") == 0
    assert count_words(None) == 0
