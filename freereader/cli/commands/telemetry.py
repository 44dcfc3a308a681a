"""Telemetry command module for querying attempt logs and domain reliability."""

import logging

import pandas as pd

from freereader.models.database import DatabaseManager
from freereader.utils.comprehensive_telemetry import ExtractionLogger
from freereader.utils.reliability import ReliabilityTracker

logger = logging.getLogger(__name__)


def add_telemetry_parser(subparsers):
    """Add telemetry command parser to CLI."""
    telemetry_parser = subparsers.add_parser(
        "telemetry",
        help="Query extraction attempt logs and domain reliability",
    )
    telemetry_parser.add_argument(
        "--database-url",
        dest="database_url",
        default=None,
        help="Override DATABASE_URL for this run",
    )

    telemetry_subparsers = telemetry_parser.add_subparsers(
        dest="telemetry_command",
        help="Telemetry commands",
    )

    logs_parser = telemetry_subparsers.add_parser(
        "logs",
        help="Show the most recent extraction attempts",
    )
    logs_parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Number of log entries to show (default: 50)",
    )

    reliability_parser = telemetry_subparsers.add_parser(
        "reliability",
        help="Show per-domain reliability statistics",
    )
    reliability_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Number of domains to show (default: 10)",
    )

    summary_parser = telemetry_subparsers.add_parser(
        "summary",
        help="Show per-method attempt statistics",
    )
    summary_parser.add_argument(
        "--hours",
        type=int,
        default=24,
        help="Number of hours to look back (default: 24)",
    )

    for sub in (logs_parser, reliability_parser, summary_parser):
        sub.add_argument(
            "--csv",
            dest="csv_path",
            default=None,
            help="Also write the rows to this CSV file",
        )

    telemetry_parser.set_defaults(func=handle_telemetry_command)


def handle_telemetry_command(args) -> int:
    """Handle telemetry command with subcommands."""
    if args.telemetry_command not in ("logs", "reliability", "summary"):
        print("Please specify a telemetry subcommand: logs, reliability, or summary")
        return 1

    try:
        with DatabaseManager(getattr(args, "database_url", None)) as db:
            if args.telemetry_command == "logs":
                rows = ExtractionLogger(db).recent(args.limit)
                _show_logs(rows)
            elif args.telemetry_command == "reliability":
                rows = ReliabilityTracker(db).top(args.limit)
                _show_reliability(rows)
            else:
                rows = ExtractionLogger(db).summary(args.hours)
                _show_summary(rows, args.hours)

        csv_path = getattr(args, "csv_path", None)
        if csv_path:
            _export_csv(rows, csv_path)

        return 0

    except Exception as e:
        logger.error(f"Telemetry command failed: {e}")
        return 1


def _export_csv(rows: list[dict], path: str) -> None:
    df = pd.DataFrame(rows)
    df.to_csv(path, index=False)
    print(f"\n💾 Wrote {len(df)} rows to {path}")


def _show_logs(rows: list[dict]) -> None:
    print("\n📜 Recent Extraction Attempts")
    print("=" * 100)

    if not rows:
        print("No extraction attempts recorded.")
        return

    print(
        f"{'When':<20} {'Method':<22} {'#':<3} {'Status':<8} "
        f"{'Score':<6} {'Time':<9} URL"
    )
    print("-" * 100)
    for row in rows:
        created = row["created_at"].strftime("%Y-%m-%d %H:%M:%S") if row["created_at"] else ""
        score = row["completeness_score"] if row["completeness_score"] is not None else "-"
        elapsed = f"{(row['response_time_ms'] or 0) / 1000:.1f}s"
        print(
            f"{created:<20} {row['method'][:22]:<22} {row['attempt_number']:<3} "
            f"{row['status']:<8} {score!s:<6} {elapsed:<9} {row['url']}"
        )
        if row["error_message"]:
            print(f"{'':<20} ↳ {row['error_message'][:78]}")

    print(f"\n📊 Total log entries shown: {len(rows)}")


def _show_reliability(rows: list[dict]) -> None:
    print("\n🌐 Domain Reliability")
    print("=" * 90)

    if not rows:
        print("No reliability data available.")
        return

    print(
        f"{'Domain':<30} {'Attempts':<9} {'Success':<8} {'Rate':<8} "
        f"{'Avg Time':<10} Best method"
    )
    print("-" * 90)
    for row in rows:
        print(
            f"{row['url_pattern'][:30]:<30} {row['total_attempts']:<9} "
            f"{row['successful_attempts']:<8} {row['success_rate']:<7.1f}% "
            f"{row['average_response_time_ms'] / 1000:<9.1f}s "
            f"{row['best_method'] or '-'}"
        )


def _show_summary(rows: list[dict], hours: int) -> None:
    print(f"\n⚡ Strategy Effectiveness (Last {hours} hours)")
    print("=" * 80)

    if not rows:
        print("No extraction attempts in the specified time period.")
        return

    print(
        f"{'Method':<22} {'Attempts':<9} {'Success':<8} {'Partial':<8} "
        f"{'Failed':<8} {'Rate':<8} {'Avg Time':<9}"
    )
    print("-" * 80)
    for row in rows:
        print(
            f"{row['method'][:22]:<22} {row['attempts']:<9} {row['success']:<8} "
            f"{row['partial']:<8} {row['failed']:<8} {row['success_rate']:<7.1f}% "
            f"{row['avg_response_time_ms'] / 1000:<8.1f}s"
        )
