"""Tests for the watch loop."""

from typing import List

import pytest

from outlook_sync.models import Empty
from outlook_sync.scheduler import run_watch


class FakeTime:
    def __init__(self) -> None:
        self.t = 0.0
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.t

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.t += seconds


class StubOrchestrator:
    def __init__(self, clock: FakeTime) -> None:
        self.clock = clock
        self.started_at: List[float] = []

    def run_cycle(self):
        self.started_at.append(self.clock.t)
        return Empty(error="offline")


class StubFreshness:
    def __init__(self, clock: FakeTime) -> None:
        self.clock = clock
        self.ticked_at: List[float] = []

    def tick(self):
        self.ticked_at.append(self.clock.t)
        return "just now"


class TestRunWatch:
    def test_cycles_and_ticks_interleave(self) -> None:
        ft = FakeTime()
        orch = StubOrchestrator(ft)
        fresh = StubFreshness(ft)

        ran = run_watch(
            orch, fresh,
            refresh_interval=300.0,
            tick_interval=60.0,
            max_cycles=2,
            sleep=ft.sleep,
            monotonic=ft.monotonic,
        )

        assert ran == 2
        assert orch.started_at == [0.0, 300.0]
        assert fresh.ticked_at == [60.0, 120.0, 180.0, 240.0]
        assert all(s == 60.0 for s in ft.sleeps)

    def test_first_cycle_runs_immediately(self) -> None:
        ft = FakeTime()
        orch = StubOrchestrator(ft)
        run_watch(
            orch, StubFreshness(ft),
            refresh_interval=3600.0,
            tick_interval=60.0,
            max_cycles=1,
            sleep=ft.sleep,
            monotonic=ft.monotonic,
        )
        assert orch.started_at == [0.0]
        assert ft.sleeps == []

    @pytest.mark.parametrize("refresh, tick", [(0, 60), (60, 0), (-1, 60)])
    def test_rejects_non_positive_intervals(self, refresh: float, tick: float) -> None:
        ft = FakeTime()
        with pytest.raises(ValueError):
            run_watch(
                StubOrchestrator(ft), StubFreshness(ft),
                refresh_interval=refresh,
                tick_interval=tick,
                max_cycles=1,
            )

    def test_returns_cycle_count_not_outcomes(self) -> None:
        ft = FakeTime()
        ran = run_watch(
            StubOrchestrator(ft), StubFreshness(ft),
            refresh_interval=1.0,
            tick_interval=60.0,
            max_cycles=50,
            sleep=ft.sleep,
            monotonic=ft.monotonic,
        )
        assert ran == 50

    def test_skipped_cycles_are_not_counted(self) -> None:
        ft = FakeTime()

        class BusyOnce(StubOrchestrator):
            def run_cycle(self):
                outcome = super().run_cycle()
                return None if len(self.started_at) == 1 else outcome

        orch = BusyOnce(ft)
        ran = run_watch(
            orch, StubFreshness(ft),
            refresh_interval=10.0,
            tick_interval=60.0,
            max_cycles=2,
            sleep=ft.sleep,
            monotonic=ft.monotonic,
        )
        assert ran == 2
        assert orch.started_at == [0.0, 10.0, 20.0]
