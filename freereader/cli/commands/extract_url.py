"""CLI command extracting a single article URL."""

from __future__ import annotations

import argparse
import json
import logging

from freereader.models.database import DatabaseManager

from ..context import build_article_fetcher

logger = logging.getLogger(__name__)


def add_extract_url_parser(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "extract-url", help="Extract one article through the mirror strategies"
    )
    parser.add_argument("url", type=str, help="Article URL to extract")
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        default=False,
        help="Print the response as JSON instead of plain text",
    )
    parser.add_argument(
        "--database-url",
        dest="database_url",
        default=None,
        help="Override DATABASE_URL for this run",
    )
    parser.set_defaults(func=handle_extract_url_command)
    return parser


def handle_extract_url_command(args) -> int:
    """Extract ``args.url`` and print the result.

    Returns:
        0 on success or partial success, 1 on failure
    """
    with DatabaseManager(getattr(args, "database_url", None)) as db:
        fetcher = build_article_fetcher(db)
        try:
            response = fetcher.fetch_article(args.url)
        finally:
            fetcher.close()

    if getattr(args, "as_json", False):
        print(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
        return 0 if response.ok else 1

    if not response.ok:
        print(f"❌ {response.error}")
        return 1

    result = response.result
    print()
    print(f"📰 {result.title}")
    if result.author:
        print(f"   by {result.author}")
    print(
        f"   {result.word_count} words · {result.reading_time} min read · "
        f"score {result.completeness_score} · via {result.method}"
        f"{' (cached)' if response.cached else ''}"
    )
    if response.warning:
        print(f"⚠️  {response.warning}")
    print("=" * 70)
    print(result.plain_text)
    return 0
