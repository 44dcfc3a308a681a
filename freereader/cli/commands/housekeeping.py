"""
Housekeeping command for cache maintenance.

Deletes article cache rows whose TTL has passed. Safe to run from several
schedulers at once: each run is a single DELETE.
"""

import logging
from datetime import datetime

from freereader.models.database import DatabaseManager
from freereader.utils.article_cache import ArticleCache

logger = logging.getLogger(__name__)


def add_housekeeping_parser(subparsers):
    """Add housekeeping command parser."""
    parser = subparsers.add_parser(
        "housekeeping",
        help="Sweep expired article cache entries",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show how many entries would be removed without deleting them",
    )
    parser.add_argument(
        "--database-url",
        dest="database_url",
        default=None,
        help="Override DATABASE_URL for this run",
    )
    return parser


def handle_housekeeping_command(args) -> int:
    """
    Handle housekeeping command.

    Args:
        args: Parsed command arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        with DatabaseManager(getattr(args, "database_url", None)) as db:
            cache = ArticleCache(db)

            print()
            print("🧹 Cache Housekeeping")
            print("=" * 70)
            print(f"Timestamp: {datetime.now().isoformat()}")
            print(f"Dry run: {args.dry_run}")
            print()

            if args.dry_run:
                expired = cache.count_expired()
                print(f"Would remove {expired} expired cache entries")
            else:
                removed = cache.sweep_expired()
                print(f"✓ Removed {removed} expired cache entries")

        return 0

    except Exception as e:
        logger.error(f"Housekeeping failed: {e}")
        return 1
