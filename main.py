#!/usr/bin/env python3
"""commentscope: sentiment, question and trend report for YouTube comments.

This CLI tool fetches the top-level comments of a video, analyzes each one
with the Cloud Natural Language API and prints an aggregate report.

Commands:
    run         Analyze the comments of one video
    status      Show configuration and database statistics
    recent      Display recently stored runs

Examples:
    python main.py run dQw4w9WgXcQ
    python main.py run "https://www.youtube.com/watch?v=dQw4w9WgXcQ" --max-comments 50
    python main.py run dQw4w9WgXcQ --output report.json --no-store
    python main.py status
    python main.py recent --hours 48

Environment:
    YOUTUBE_API_KEY: Required for the run command
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from config import Config
from database import Database
from observability.logging import setup_logging
from observability.tracing import setup_tracing
from preprocess import extract_video_id

logger = logging.getLogger(__name__)


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Run the pipeline for one video and print the report.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for a report, 1 for an error)
    """
    from pipeline import run_pipeline

    try:
        video_id = extract_video_id(args.video)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_tracing(
        enabled=config.enable_logfire,
        service_name="commentscope",
        token=config.logfire_token,
    )

    try:
        payload = asyncio.run(run_pipeline(video_id, config.youtube_api_key, config))
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130

    if args.output:
        _write_json(Path(args.output), payload)
        logger.info("Report written | path=%s", args.output)
    else:
        print(json.dumps(payload, indent=2, ensure_ascii=False))

    if "error" in payload:
        logger.error("Run failed | video_id=%s error=%s", video_id, payload["error"])
        return 1
    return 0


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration and database statistics.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    with Database(config.db_path) as db:
        db_stats = db.stats()

    status = {
        "config": {
            "max_comments": config.max_comments,
            "page_concurrency": config.page_concurrency,
            "request_timeout": config.request_timeout,
            "persist_comments": config.persist_comments,
            "youtube_api_key_set": bool(config.youtube_api_key),
            "language_api_key_set": bool(config.language_api_key),
            "enable_logfire": config.enable_logfire,
        },
        "database": {
            "path": str(config.db_path),
            "runs": db_stats["runs"],
            "videos": db_stats["videos"],
            "comments": db_stats["comments"],
        },
    }

    print(json.dumps(status, indent=2))
    return 0


def cmd_recent(args: argparse.Namespace, config: Config) -> int:
    """Display runs stored in the last N hours.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    with Database(config.db_path) as db:
        runs = db.recent(hours=args.hours)

    if not runs:
        print(f"No stored runs in the last {args.hours} hours.")
        return 0

    print(f"\n=== Stored Runs (last {args.hours} hours) ===\n")
    for run in runs:
        stored = datetime.fromtimestamp(run["stored_at"])
        print(f"#{run['id']} {run['video_id']}")
        print(f"   Stored: {stored.strftime('%Y-%m-%d %H:%M')}")
        print(f"   Comments: {run['comment_count']}")
        print()

    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        description="commentscope: YouTube comment analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Analyze the comments of a video")
    run_parser.add_argument(
        "video",
        help="Video id or YouTube URL",
    )
    run_parser.add_argument(
        "--max-comments",
        type=int,
        help="Comments to analyze (default: MAX_COMMENTS or 150)",
    )
    run_parser.add_argument(
        "--concurrency",
        type=int,
        help="Concurrent analyses per page (default: PAGE_CONCURRENCY or 10)",
    )
    run_parser.add_argument(
        "--output",
        type=str,
        help="Write the JSON report to this file instead of stdout",
    )
    run_parser.add_argument(
        "--no-store",
        action="store_true",
        help="Do not store the comment list in the database",
    )

    # status command
    subparsers.add_parser("status", help="Show configuration and statistics")

    # recent command
    recent_parser = subparsers.add_parser("recent", help="Show recently stored runs")
    recent_parser.add_argument(
        "--hours",
        type=int,
        default=24,
        help="Look back N hours (default: 24)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = Config.load()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    # Override config with CLI arguments
    if args.command == "run":
        if args.max_comments is not None:
            config.max_comments = args.max_comments
        if args.concurrency is not None:
            config.page_concurrency = args.concurrency
        if args.no_store:
            config.persist_comments = False

    # Setup logging
    setup_logging(config, verbose=args.verbose)

    # Validate configuration for commands that call remote APIs
    if args.command == "run":
        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1

    # Route to command handler
    commands = {
        "run": cmd_run,
        "status": cmd_status,
        "recent": cmd_recent,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except Exception as e:
            logger.error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
