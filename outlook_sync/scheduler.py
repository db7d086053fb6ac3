"""Single-threaded loop interleaving sync cycles with freshness ticks."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .freshness import FreshnessClock
from .sync import SyncOrchestrator

logger = logging.getLogger(__name__)


def run_watch(
    orchestrator: SyncOrchestrator,
    clock: FreshnessClock,
    *,
    refresh_interval: float,
    tick_interval: float,
    max_cycles: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
    monotonic: Callable[[], float] = time.monotonic,
) -> int:
    """Run a cycle now, then keep refreshing and ticking until ``max_cycles``.

    Outcomes are delivered to the orchestrator's presenter; nothing is kept
    here, so an unbounded watch runs in constant memory.

    Returns:
        Number of cycles that ran.
    """
    if refresh_interval <= 0 or tick_interval <= 0:
        raise ValueError("Intervals must be positive")

    cycles = 0
    next_sync = monotonic()
    next_tick = next_sync + tick_interval

    while max_cycles is None or cycles < max_cycles:
        now = monotonic()
        if now >= next_sync:
            if orchestrator.run_cycle() is not None:
                cycles += 1
            next_sync = now + refresh_interval
            continue
        if now >= next_tick:
            clock.tick()
            next_tick = now + tick_interval
            continue

        delay = min(next_sync, next_tick) - now
        logger.debug("Sleeping %.1fs", delay)
        sleep(delay)

    return cycles
