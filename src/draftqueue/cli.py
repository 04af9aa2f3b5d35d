"""
Command line entry point.

Usage:
    # Check how a rankings list resolves against the roster
    draftqueue resolve my_rankings.txt

    # Add the resolved players to the queue in an open draft (browser)
    draftqueue add my_rankings.txt

    # Same, including the best guess for ambiguous names
    draftqueue add my_rankings.txt --yes

    # Which of these are already queued?
    draftqueue validate my_rankings.txt

    # Empty the queue
    draftqueue clear

    # Dry run against a saved page instead of a browser
    draftqueue --html board.html --html-out board-after.html clear

Names are read one per line from the given file, or stdin when the file
is "-". The roster comes from the Sleeper API unless --roster-file points
at a saved /players/nfl dump.
"""

import argparse
import asyncio
import contextlib
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from draftqueue.board import QueueReconciler, RunSummary
from draftqueue.config import Settings, get_settings
from draftqueue.players import MatchOptions, PlayerResolver, ResolveListResult
from draftqueue.roster import (
    RosterProvider,
    RosterUnavailableError,
    SleeperRosterProvider,
    StaticRosterProvider,
)
from draftqueue.surface import HtmlSnapshotSurface, SurfaceError

logger = logging.getLogger(__name__)

CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(settings: Settings) -> None:
    handler = logging.StreamHandler(sys.stderr)
    if settings.log_format == "json":
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logging.basicConfig(level=settings.log_level, handlers=[handler], force=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="draftqueue",
        description="Sync a typed player list with a fantasy draft board queue",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--roster-file",
        type=Path,
        default=None,
        help="Saved /players/nfl JSON dump to use instead of the Sleeper API",
    )
    parser.add_argument(
        "--html",
        type=Path,
        default=None,
        help="Saved draft board page to run against instead of a live browser",
    )
    parser.add_argument(
        "--html-out",
        type=Path,
        default=None,
        help="With --html, write the page as it looks after the run",
    )
    parser.add_argument(
        "--render-limit",
        type=int,
        default=None,
        help="With --html, only treat the first N player rows as rendered",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override DRAFTQUEUE_LOG_LEVEL (DEBUG, INFO, ...)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    resolve = commands.add_parser("resolve", help="Match names against the roster only")
    resolve.add_argument("names", nargs="?", default="-", help="Names file, '-' for stdin")
    resolve.add_argument(
        "--active-only",
        action="store_true",
        help="Ignore inactive, injured reserve and practice squad players",
    )

    add = commands.add_parser("add", help="Add the resolved players to the queue")
    add.add_argument("names", nargs="?", default="-", help="Names file, '-' for stdin")
    add.add_argument(
        "--yes",
        action="store_true",
        help="Also add the best candidate for ambiguous names",
    )

    validate = commands.add_parser("validate", help="Show which names are already queued")
    validate.add_argument("names", nargs="?", default="-", help="Names file, '-' for stdin")

    commands.add_parser("clear", help="Remove every player from the queue")

    return parser


def read_names(source: str) -> list[str]:
    if source == "-":
        return sys.stdin.read().splitlines()
    return Path(source).read_text(encoding="utf-8").splitlines()


def make_roster_provider(args: argparse.Namespace, settings: Settings) -> RosterProvider:
    if args.roster_file is not None:
        return StaticRosterProvider.from_json_file(args.roster_file)
    return SleeperRosterProvider(settings)


def open_surface(args: argparse.Namespace, settings: Settings):
    """Async context manager yielding the surface to run against."""
    if args.html is not None:
        markup = args.html.read_text(encoding="utf-8")
        surface = HtmlSnapshotSurface(markup, settings, render_limit=args.render_limit)
        return contextlib.nullcontext(surface)

    from draftqueue.surface.browser import PlaywrightSurface

    return PlaywrightSurface(settings)


# =============================================================================
# Output
# =============================================================================

def print_resolution(results: ResolveListResult) -> None:
    print("\n" + "=" * 60)
    print(f"Resolved {results.total} names")
    print("=" * 60)

    for line in results.matched:
        c = line.result.candidate
        print(f"  OK         {line.search_name:<25} -> {c.full_name} "
              f"({c.player.display_position}, {c.player.team or 'FA'}) [{c.confidence:.2f}]")

    for line in results.ambiguous:
        options = ", ".join(
            f"{c.full_name} ({c.player.team or 'FA'})" for c in line.result.choices
        )
        print(f"  AMBIGUOUS  {line.search_name:<25} -> {options}")

    for line in results.unmatched:
        hint = ""
        if line.suggestions:
            hint = " - did you mean " + ", ".join(s.full_name for s in line.suggestions) + "?"
        print(f"  NO MATCH   {line.search_name}{hint}")

    for line in results.errors:
        print(f"  ERROR      {line.search_name}: {line.error}")


def print_summary(summary: RunSummary) -> None:
    print("\n" + "=" * 60)
    print(f"{summary.operation.capitalize()} Complete")
    print("=" * 60)
    for outcome in summary:
        detail = f" ({outcome.detail})" if outcome.detail else ""
        print(f"  {outcome.status.value:<36} {outcome.target}{detail}")
    for status, count in sorted(summary.counts.items()):
        print(f"  {status}: {count}")


# =============================================================================
# Commands
# =============================================================================

async def run(args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "clear":
        async with open_surface(args, settings) as surface:
            summary = await QueueReconciler(surface, settings).clear_queue()
            _save_snapshot(args, surface)
        print_summary(summary)
        return 0

    names = read_names(args.names)
    roster = await make_roster_provider(args, settings).get_all_players()
    resolver = PlayerResolver(settings)

    if args.command == "resolve":
        options = MatchOptions(require_active_status=True) if args.active_only else MatchOptions.for_review()
        print_resolution(resolver.resolve_list(names, roster, options))
        return 0

    if args.command == "validate":
        async with open_surface(args, settings) as surface:
            engine = QueueReconciler(surface, settings, resolver)
            report = await engine.validate_against_queue(names, roster)
        print(f"\nQueue has {report.queue_size} players")
        for item in report.in_queue:
            print(f"  QUEUED      {item.search_name} (as {item.queued_as})")
        for item in report.not_in_queue:
            print(f"  NOT QUEUED  {item.search_name} -> {item.candidate.full_name}")
        for name in report.invalid:
            print(f"  INVALID     {name}")
        return 0

    results = resolver.resolve_list(names, roster, MatchOptions.for_review())
    print_resolution(results)

    players = results.players()
    if results.ambiguous:
        if args.yes:
            players.extend(line.result.player for line in results.ambiguous)
        else:
            print(f"\n  Skipping {len(results.ambiguous)} ambiguous names (use --yes to add best guesses)")

    if not players:
        print("\nNothing to add.")
        return 0

    async with open_surface(args, settings) as surface:
        summary = await QueueReconciler(surface, settings, resolver).add_players(players)
        _save_snapshot(args, surface)
    print_summary(summary)
    return 0


def _save_snapshot(args: argparse.Namespace, surface) -> None:
    if args.html_out is not None and isinstance(surface, HtmlSnapshotSurface):
        args.html_out.write_text(surface.to_html(), encoding="utf-8")
        logger.info("Wrote page snapshot to %s", args.html_out)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    settings = get_settings()
    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level.upper()})
    configure_logging(settings)

    try:
        return asyncio.run(run(args, settings))
    except RosterUnavailableError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except SurfaceError as e:
        print(f"Error: draft board unavailable: {e}", file=sys.stderr)
        return 1
