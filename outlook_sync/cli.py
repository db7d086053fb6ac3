"""Command-line interface for outlook-sync."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Tuple

from .cache import ConditionalCache, JsonFileStore
from .config import Settings, get_settings
from .fetcher import TimedFetcher
from .freshness import FreshnessClock
from .models import Empty
from .presenter import TextPresenter
from .scheduler import run_watch
from .sync import SyncOrchestrator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    p = argparse.ArgumentParser(
        prog="outlook-sync",
        description="Fetch and display the daily market outlook with conditional GET caching.",
    )
    p.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    # --- sync ---
    sync = sub.add_parser("sync", help="Run one synchronization cycle")
    sync.add_argument(
        "--json",
        action="store_true",
        help="Print the cycle outcome as JSON instead of text",
    )

    # --- watch ---
    watch = sub.add_parser("watch", help="Keep refreshing and updating the freshness label")
    watch.add_argument(
        "--max-cycles",
        type=int,
        default=None,
        help="Stop after this many sync cycles (default: run forever)",
    )

    # --- status ---
    sub.add_parser("status", help="Show how fresh the cached outlook is, without network")

    return p


def _configure_logging(verbose: bool) -> None:
    """Set up root logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def build_client(
    settings: Settings, presenter: TextPresenter
) -> Tuple[SyncOrchestrator, FreshnessClock]:
    """Wire fetcher, file cache, clock and presenter together."""
    cache = ConditionalCache(JsonFileStore(settings.state_path))
    clock = FreshnessClock(cache, presenter)
    orchestrator = SyncOrchestrator(
        TimedFetcher(settings), cache, presenter, settings, clock=clock
    )
    return orchestrator, clock


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    settings = get_settings()

    if args.cmd == "sync":
        if args.json:
            presenter = TextPresenter(stream=sys.stderr)
        else:
            presenter = TextPresenter()
        orchestrator, _ = build_client(settings, presenter)
        outcome = orchestrator.run_cycle()
        if args.json and outcome is not None:
            print(json.dumps(outcome.model_dump(mode="json"), indent=2))
        return 1 if isinstance(outcome, Empty) else 0

    if args.cmd == "watch":
        orchestrator, clock = build_client(settings, TextPresenter())
        try:
            run_watch(
                orchestrator,
                clock,
                refresh_interval=settings.refresh_interval_seconds,
                tick_interval=settings.freshness_interval_seconds,
                max_cycles=args.max_cycles,
            )
        except KeyboardInterrupt:
            logger.info("Interrupted; stopping")
        return 0

    if args.cmd == "status":
        _, clock = build_client(settings, TextPresenter())
        if clock.tick() is None:
            print("No cached outlook.")
            return 1
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
