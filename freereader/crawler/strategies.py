"""Extraction strategy configuration.

A strategy is a named mirror/proxy endpoint plus its timeout and retry
budget. Priority is list order and is never changed at runtime.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

import yaml

logger = logging.getLogger(__name__)


BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

HEADER_PROFILES: dict[str, dict[str, str]] = {
    "browser": {
        "User-Agent": BROWSER_USER_AGENT,
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Upgrade-Insecure-Requests": "1",
    },
}
# Direct hits look like a search-engine click-through
HEADER_PROFILES["direct"] = {
    **HEADER_PROFILES["browser"],
    "Referer": "https://www.google.com/",
}

_MEDIUM_PREFIX_RE = re.compile(r"^https?://(www\.)?medium\.com/", re.IGNORECASE)
_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


@dataclass(frozen=True)
class ExtractionStrategy:
    """Static configuration for one content source."""

    name: str
    url_template: str
    timeout: float
    max_retries: int = 1
    header_profile: str = "browser"

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError(f"Strategy {self.name}: max_retries must be >= 1")
        if self.timeout <= 0:
            raise ValueError(f"Strategy {self.name}: timeout must be positive")
        if self.header_profile not in HEADER_PROFILES:
            raise ValueError(
                f"Strategy {self.name}: unknown header profile '{self.header_profile}'"
            )

    def resolve_url(self, article_url: str) -> str:
        """Fill the template placeholders for ``article_url``."""
        path = _MEDIUM_PREFIX_RE.sub("", article_url)
        if path == article_url:
            # Subdomain articles keep their host in the mirror path
            path = _SCHEME_RE.sub("", article_url)
        return self.url_template.format(
            url=article_url,
            url_encoded=quote(article_url, safe=""),
            path=path,
        )

    def headers(self) -> dict[str, str]:
        return dict(HEADER_PROFILES[self.header_profile])


DEFAULT_STRATEGIES: tuple[ExtractionStrategy, ...] = (
    ExtractionStrategy(
        name="freedium-primary",
        url_template="https://freedium-mirror.cfd/{url}",
        timeout=25.0,
        max_retries=2,
    ),
    ExtractionStrategy(
        name="freedium-alternative",
        url_template="https://freedium.cfd/{url}",
        timeout=25.0,
        max_retries=2,
    ),
    ExtractionStrategy(
        name="scribe-rip",
        url_template="https://scribe.rip/{path}",
        timeout=25.0,
        max_retries=1,
    ),
    ExtractionStrategy(
        name="allorigins-proxy",
        url_template="https://api.allorigins.win/raw?url={url_encoded}",
        timeout=20.0,
        max_retries=1,
        header_profile="direct",
    ),
    ExtractionStrategy(
        name="direct-fetch",
        url_template="{url}",
        timeout=20.0,
        max_retries=1,
        header_profile="direct",
    ),
)


def load_strategies(path: str | Path | None = None) -> list[ExtractionStrategy]:
    """Return the configured strategy list.

    Without ``path`` the built-in defaults are used. A YAML file must contain
    a top-level ``strategies`` list whose entries mirror the dataclass
    fields::

        strategies:
          - name: freedium-primary
            url_template: "https://freedium-mirror.cfd/{url}"
            timeout: 25
            max_retries: 2
    """
    if path is None:
        return list(DEFAULT_STRATEGIES)

    with open(path, encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}

    entries = payload.get("strategies") if isinstance(payload, dict) else None
    if not entries:
        raise ValueError(f"No strategies defined in {path}")

    strategies = []
    for entry in entries:
        strategies.append(
            ExtractionStrategy(
                name=str(entry["name"]),
                url_template=str(entry["url_template"]),
                timeout=float(entry.get("timeout", 20)),
                max_retries=int(entry.get("max_retries", 1)),
                header_profile=str(entry.get("header_profile", "browser")),
            )
        )

    names = [strategy.name for strategy in strategies]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate strategy names in {path}: {names}")

    logger.info(f"Loaded {len(strategies)} extraction strategies from {path}")
    return strategies
