"""Centralized configuration for freereader.

Values are read from the environment (optionally seeded from a ``.env`` file
at the project root). Tests override ``DATABASE_URL`` before importing this
module so a throwaway SQLite database is used.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return float(value)


# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///data/freereader.db")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Cache
CACHE_TTL_DAYS = _env_int("CACHE_TTL_DAYS", 7)

# Completeness thresholds consumed by the orchestrator
SUCCESS_THRESHOLD = _env_int("SUCCESS_THRESHOLD", 60)
PARTIAL_THRESHOLD = _env_int("PARTIAL_THRESHOLD", 40)
FALLBACK_THRESHOLD = _env_int("FALLBACK_THRESHOLD", 35)

# Retry / fetch behaviour
BACKOFF_BASE_SECONDS = _env_float("BACKOFF_BASE_SECONDS", 1.0)
MIN_RESPONSE_CHARS = _env_int("MIN_RESPONSE_CHARS", 1000)
MIN_VISIBLE_TEXT_CHARS = _env_int("MIN_VISIBLE_TEXT_CHARS", 200)

# Accepted article domains (subdomains are always accepted)
SOURCE_DOMAINS = [
    domain.strip().lower()
    for domain in os.getenv("SOURCE_DOMAINS", "medium.com").split(",")
    if domain.strip()
]

# Optional YAML file replacing the built-in strategy list
STRATEGIES_FILE = os.getenv("STRATEGIES_FILE") or None
