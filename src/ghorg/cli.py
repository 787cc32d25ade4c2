#!/usr/bin/env python3
"""
Gather contribution statistics for one or more GitHub orgs and print them as JSON.

    ghorg contrib ORG [ORG ...] [--external] [--private]
    ghorg helped ORG [ORG ...] [--limit N] [--min-comments N]
"""
import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from dotenv import load_dotenv

from .config import ConfigError, Settings, api_base_for_host
from .contributions import ContributionAggregator
from .github.client import create_client
from .github.errors import GitHubError
from .helped import DEFAULT_LIMIT, DEFAULT_MINIMUM_COMMENT_COUNT, HelpedUserFinder
from .log import LEVELS, setup_logging
from .progress import ProgressTracker


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ghorg", description="GitHub organization contribution statistics")
    p.add_argument("--loglevel", choices=list(LEVELS), default="info",
                   help="Level of log output (to STDERR; default info)")
    p.add_argument("-q", "--quiet", action="store_true", help="Suppress all logging output but errors")
    p.add_argument("--progress", action="store_true", help="Show progress bars (to STDERR)")
    p.add_argument("--pretty", action="store_true", help="Pretty-print the JSON output")
    p.add_argument("--host", type=str, help="Host if not api.github.com (for GitHub Enterprise)")
    p.add_argument("--api-base", type=str, help="GitHub API base URL (overrides --host; or set GITHUB_API)")
    p.add_argument("--concurrency", type=int, help="Max concurrent API lookups per fan-out (default 1)")
    p.add_argument("--log-file", type=str, help="Also write logs to this file")

    sub = p.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    contrib = sub.add_parser("contrib", help="Gather contribution statistics for one or more GitHub orgs.")
    contrib.add_argument("org", nargs="+", help="GitHub org(s)")
    contrib.add_argument("-e", "--external", action="store_true",
                         help="Find non-org contributions by org members")
    contrib.add_argument("--private", action="store_true",
                         help="Report contributions to private repos (and private members)")
    contrib.add_argument("--event-type", dest="event_types", action="append",
                         help="Event type counted as a contribution (repeatable; default PushEvent, PullRequestEvent)")
    contrib.add_argument("--max-event-pages", type=int,
                         help="Pages of each member's events to read (default 10)")

    helped = sub.add_parser(
        "helped",
        help="Find non-org users (and their top recent contributions) whose issues were closed within org repos.",
    )
    helped.add_argument("org", nargs="+", help="GitHub org(s)")
    helped.add_argument("--limit", type=int, default=DEFAULT_LIMIT,
                        help=f"Limit the number of unique repos in recent contributions (default {DEFAULT_LIMIT})")
    helped.add_argument("--min-comments", type=int, default=DEFAULT_MINIMUM_COMMENT_COUNT,
                        help="Minimum comments on a closed issue for its author to count as helped "
                             f"(default {DEFAULT_MINIMUM_COMMENT_COUNT})")
    return p


def resolve_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    api_base = args.api_base or (api_base_for_host(args.host) if args.host else None)
    return settings.with_overrides(
        api_base=api_base,
        concurrency=max(1, args.concurrency) if args.concurrency else None,
        event_types=getattr(args, "event_types", None),
        max_event_pages=getattr(args, "max_event_pages", None),
    )


def render(data: Any, pretty: bool) -> str:
    return json.dumps(data, indent=2) if pretty else json.dumps(data)


def run(args: argparse.Namespace) -> Any:
    settings = resolve_settings(args)
    progress = ProgressTracker(enabled=args.progress and not args.quiet)
    with create_client(settings) as client:
        try:
            aggregator = ContributionAggregator(
                client,
                progress,
                concurrency=settings.concurrency,
                event_types=settings.event_types,
                events_per_page=settings.events_per_page,
                max_event_pages=settings.max_event_pages,
                per_page=settings.per_page,
            )
            if args.command == "helped":
                finder = HelpedUserFinder(
                    client, progress, aggregator=aggregator, concurrency=settings.concurrency
                )
                return finder.find_helped_users(
                    args.org, limit=args.limit, minimum_comment_count=args.min_comments
                )
            return aggregator.aggregate_contributions(
                args.org, private=args.private, external=args.external,
                event_types=settings.event_types,
            )
        finally:
            progress.finish()


def main(argv: Optional[List[str]] = None) -> int:
    # Load environment variables from .env
    load_dotenv(override=True)
    try:
        args = build_parser().parse_args(argv)
    except SystemExit as e:
        # usage errors exit 1 like every other failure; --help still exits 0
        return 0 if e.code in (0, None) else 1
    setup_logging(quiet=args.quiet, level_name=args.loglevel, log_file=args.log_file)

    try:
        data = run(args)
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 1
    except ConfigError as e:
        logging.error(f"Invalid configuration: {e}")
        return 1
    except GitHubError as e:
        logging.error(f"{e}")
        if logging.getLogger().getEffectiveLevel() <= logging.DEBUG:
            import traceback
            traceback.print_exc()
        return 1

    print(render(data, args.pretty))
    return 0


if __name__ == "__main__":
    sys.exit(main())
