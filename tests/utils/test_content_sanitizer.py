"""Tests for markup sanitization and plain-text derivation."""

import re

import pytest

from freereader.utils.content_sanitizer import (
    clean_text,
    decode_entities,
    html_to_plain_text,
    sanitize_html,
)

ADVERSARIAL_FIXTURE = """
<div class="story">
  <script>document.cookie</script>
  <SCRIPT type="text/javascript">alert('upper')</SCRIPT>
  <style>body { display: none }</style>
  <!-- tracking comment -->
  <header class="site-header"><a href="/">Home</a></header>
  <nav><a href="/next">Next</a></nav>
  <h2 onclick="steal()">A Section Heading</h2>
  <p onmouseover="steal()" class="graf">The first legitimate paragraph.</p>
  <img src="https://cdn.example.com/figure.png" onerror="alert(1)" alt="figure">
  <a href="javascript:alert(1)" data-track-click="cta">bad link</a>
  <a href=" JaVaScRiPt:alert(2)">sneaky link</a>
  <a href="https://example.com/ok">good link</a>
  <blockquote>A quotation</blockquote>
  <ul><li>one</li><li>two</li></ul>
  <iframe src="https://ads.example.com/frame"></iframe>
  <form action="/subscribe"><input name="email"><button>Go</button></form>
  <svg><circle r="5"></circle></svg>
  <div class="clap-button">Clap 1.2K</div>
  <div data-testid="follow-widget">Follow</div>
  <div class="ad-slot-top">Buy things</div>
  <aside>Related</aside>
  <footer>Footer</footer>
  <object data="x.swf"></object>
  <p>The second paragraph &amp; more.</p>
</div>
"""


@pytest.fixture
def sanitized():
    return sanitize_html(ADVERSARIAL_FIXTURE)


def test_removes_executable_content(sanitized):
    lowered = sanitized.lower()
    assert "<script" not in lowered
    assert "<style" not in lowered
    assert "alert('upper')" not in sanitized
    assert "document.cookie" not in sanitized
    assert not re.search(r"\son\w+\s*=", sanitized, re.IGNORECASE)
    assert "javascript:" not in lowered


def test_preserves_article_markup(sanitized):
    assert "<p" in sanitized
    assert "The first legitimate paragraph." in sanitized
    assert "<img" in sanitized
    assert 'src="https://cdn.example.com/figure.png"' in sanitized
    assert "<h2>A Section Heading</h2>" in sanitized
    assert "<blockquote>A quotation</blockquote>" in sanitized
    assert "<li>one</li>" in sanitized
    assert 'href="https://example.com/ok"' in sanitized


def test_neutralizes_script_links(sanitized):
    assert sanitized.count('href="#"') == 2
    assert "data-track" not in sanitized


@pytest.mark.parametrize(
    "fragment",
    [
        "tracking comment",
        "site-header",
        "<nav",
        "<iframe",
        "<form",
        "<input",
        "<button",
        "<svg",
        "Clap 1.2K",
        "follow-widget",
        "Buy things",
        "<aside",
        "<footer",
        "<object",
    ],
)
def test_removes_non_article_elements(sanitized, fragment):
    assert fragment not in sanitized


def test_empty_input():
    assert sanitize_html("") == ""


def test_keeps_article_header():
    html = '<header class="story-header"><h1>Title</h1></header><p>Body</p>'
    assert "<h1>Title</h1>" in sanitize_html(html)


@pytest.mark.parametrize(
    "div",
    [
        '<div class="shared-insights">Kept body text</div>',
        '<div class="highlighted-quote">Kept body text</div>',
        '<div class="followup">Kept body text</div>',
        '<div data-testid="modality-note">Kept body text</div>',
    ],
)
def test_keeps_divs_that_only_resemble_widgets(div):
    assert "Kept body text" in sanitize_html(div)


@pytest.mark.parametrize(
    "div",
    [
        '<div class="pw-highlight-menu">Widget</div>',
        '<div class="story shareButton">Widget</div>',
        '<div data-testid="subscribe_modal">Widget</div>',
    ],
)
def test_removes_widget_divs_by_class_word(div):
    assert "Widget" not in sanitize_html(div)


def test_plain_text_decodes_fixed_entity_set():
    markup = "<p>Fish &amp; chips&nbsp;&mdash; &quot;cheap&quot; &#39;n&#39; &lt;good&gt;&hellip;</p>"
    assert html_to_plain_text(markup) == "Fish & chips — \"cheap\" 'n' <good>…"


def test_plain_text_collapses_whitespace():
    assert html_to_plain_text("<h1>Title</h1>\n\n<p>One</p><p>Two</p>") == "Title One Two"


def test_amp_is_decoded_once():
    assert decode_entities("&amp;lt;") == "&lt;"


def test_clean_text_trims():
    assert clean_text("  Ada&nbsp;Lovelace \n") == "Ada Lovelace"
