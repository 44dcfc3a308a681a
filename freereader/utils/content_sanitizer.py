"""Markup sanitization for extracted article bodies.

Third-party mirrors wrap the article in their own chrome: scripts, consent
forms, share/clap widgets, tracking pixels. This module strips everything
executable, interactive or non-article while keeping the semantic markup a
reader needs (headings, paragraphs, lists, blockquotes, images, links).
"""

import logging
import re

from bs4 import BeautifulSoup, Comment, Tag

logger = logging.getLogger(__name__)


# Removed together with their children
REMOVED_TAGS: tuple[str, ...] = (
    "script",
    "style",
    "noscript",
    "template",
    "iframe",
    "frame",
    "frameset",
    "object",
    "embed",
    "applet",
    "form",
    "input",
    "button",
    "select",
    "textarea",
    "nav",
    "footer",
    "aside",
    "svg",
    "math",
    "link",
    "meta",
    "base",
)

# Site chrome rendered as <header> (article headers are kept)
_SITE_HEADER_CLASS_RE = re.compile(
    r"site-header|main-header|top-header|navigation", re.IGNORECASE
)

# Interactive widgets injected by Medium and its mirrors, matched per word
# of a class token or test id ("clap-button", "followWidget")
_WIDGET_WORDS = frozenset(
    {"clap", "follow", "share", "subscribe", "highlight", "tooltip", "popup", "modal"}
)
_WORD_RE = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+")

# Ad and tracking containers, matched per class token / id
_AD_TOKEN_RE = re.compile(
    r"^(ad|ads|adsbygoogle|ad[-_][\w-]+|ads[-_][\w-]+|advert[\w-]*|sponsor[\w-]*|"
    r"promo[\w-]*|tracking[\w-]*|tracker|pixel|beacon|analytics)$",
    re.IGNORECASE,
)

_TRACKING_ATTR_RE = re.compile(r"^data-(track|analytics|pixel|beacon)", re.IGNORECASE)
_EVENT_HANDLER_ATTR_RE = re.compile(r"^on", re.IGNORECASE)
_URL_ATTRS = ("href", "src", "action", "formaction", "xlink:href", "srcset", "poster")
_SCRIPT_URL_RE = re.compile(r"^\s*(javascript|vbscript|data\s*:\s*text/html)", re.IGNORECASE)

_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n\s*\n")

# Fixed entity set decoded when deriving plain text
ENTITY_MAP: dict[str, str] = {
    "&nbsp;": " ",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
    "&mdash;": "—",
    "&ndash;": "–",
    "&hellip;": "…",
}


def decode_entities(text: str) -> str:
    """Decode the fixed entity set; ``&amp;`` last so it is never double-decoded."""
    for entity, replacement in ENTITY_MAP.items():
        text = text.replace(entity, replacement)
    return text.replace("&amp;", "&")


def clean_text(text: str) -> str:
    """Decode entities and trim a short field value (title, author)."""
    return _WHITESPACE_RE.sub(" ", decode_entities(text)).strip()


def strip_tags(markup: str) -> str:
    return _TAG_RE.sub(" ", markup)


def html_to_plain_text(markup: str) -> str:
    """Derive plain text from sanitized markup."""
    text = decode_entities(strip_tags(markup))
    return _WHITESPACE_RE.sub(" ", text).strip()


def _class_tokens(element: Tag) -> list[str]:
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return [str(token) for token in classes]


def _is_site_header(element: Tag) -> bool:
    return element.name == "header" and bool(
        _SITE_HEADER_CLASS_RE.search(" ".join(_class_tokens(element)))
    )


def _names_widget(token: str) -> bool:
    return any(word.lower() in _WIDGET_WORDS for word in _WORD_RE.findall(token))


def _is_widget(element: Tag) -> bool:
    if element.name != "div":
        return False
    if any(_names_widget(token) for token in _class_tokens(element)):
        return True
    testid = element.get("data-testid")
    return bool(testid and _names_widget(str(testid)))


def _is_ad_container(element: Tag) -> bool:
    if element.name in ("p", "img", "h1", "h2", "h3", "h4", "h5", "h6"):
        return False
    tokens = _class_tokens(element)
    element_id = element.get("id")
    if element_id:
        tokens.append(str(element_id))
    return any(_AD_TOKEN_RE.match(token) for token in tokens)


def _clean_attributes(element: Tag) -> None:
    for attr in list(element.attrs):
        if _EVENT_HANDLER_ATTR_RE.match(attr) or _TRACKING_ATTR_RE.match(attr):
            del element.attrs[attr]
            continue

        if attr.lower() in _URL_ATTRS:
            value = element.attrs[attr]
            if isinstance(value, list):
                value = " ".join(value)
            if _SCRIPT_URL_RE.match(str(value)):
                if attr.lower() == "href":
                    element.attrs[attr] = "#"
                else:
                    del element.attrs[attr]


def sanitize_html(markup: str) -> str:
    """Strip executable, interactive and non-article elements from ``markup``."""
    if not markup:
        return ""

    soup = BeautifulSoup(markup, "html.parser")

    for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
        comment.extract()

    for element in soup.find_all(REMOVED_TAGS):
        element.decompose()

    # Collect first: decomposing while iterating find_all() skips siblings
    doomed = [
        element
        for element in soup.find_all(True)
        if _is_site_header(element) or _is_widget(element) or _is_ad_container(element)
    ]
    for element in doomed:
        if not element.decomposed:
            element.decompose()

    for element in soup.find_all(True):
        _clean_attributes(element)

    cleaned = str(soup)
    cleaned = _BLANK_LINES_RE.sub("\n\n", cleaned)
    return cleaned.strip()
