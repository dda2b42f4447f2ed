from __future__ import annotations

import logging
from typing import List

import pytest

from services.scheduler import IntervalScheduler, SchedulerState


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _round(clock: FakeClock, durations: List[float], starts: List[float]):
    def run() -> None:
        starts.append(clock.now)
        clock.now += durations[len(starts) - 1]

    return run


def test_fast_rounds_start_exactly_one_period_apart() -> None:
    clock = FakeClock()
    starts: List[float] = []
    scheduler = IntervalScheduler(
        5, _round(clock, [0.5, 2.0, 4.9, 0.0], starts), clock=clock, sleep=clock.sleep
    )

    scheduler.run(max_rounds=4)

    gaps = [later - earlier for earlier, later in zip(starts, starts[1:])]
    assert gaps == pytest.approx([5.0, 5.0, 5.0])
    assert clock.sleeps == pytest.approx([4.5, 3.0, 0.1, 5.0])


def test_overrunning_round_is_followed_immediately() -> None:
    clock = FakeClock()
    starts: List[float] = []
    scheduler = IntervalScheduler(5, _round(clock, [7.0, 1.0], starts), clock=clock, sleep=clock.sleep)

    first_sleep = scheduler.run_once()
    second_sleep = scheduler.run_once()

    assert first_sleep == 0.0
    assert starts[1] - starts[0] == pytest.approx(7.0)
    assert second_sleep == pytest.approx(4.0)
    # No catch-up: the sleep after the short round is not shortened.
    assert clock.sleeps == pytest.approx([4.0])


def test_sleep_is_never_negative() -> None:
    scheduler = IntervalScheduler(1, lambda: None)

    assert scheduler.sleep_after(0.25) == pytest.approx(0.75)
    assert scheduler.sleep_after(1.0) == 0.0
    assert scheduler.sleep_after(30.0) == 0.0


def test_state_transitions_around_a_round() -> None:
    clock = FakeClock()
    observed: List[SchedulerState] = []
    scheduler: IntervalScheduler

    def run() -> None:
        observed.append(scheduler.state)

    scheduler = IntervalScheduler(1, run, clock=clock, sleep=clock.sleep)
    assert scheduler.state == SchedulerState.sleeping

    scheduler.run(max_rounds=2)

    assert observed == [SchedulerState.running_round, SchedulerState.running_round]
    assert scheduler.state == SchedulerState.sleeping
    assert scheduler.rounds_completed == 2


def test_non_positive_period_is_rejected() -> None:
    with pytest.raises(ValueError):
        IntervalScheduler(0, lambda: None)


def test_sleep_duration_is_logged(caplog) -> None:
    clock = FakeClock()
    scheduler = IntervalScheduler(5, _round(clock, [1.25, 6.0], []), clock=clock, sleep=clock.sleep)

    with caplog.at_level(logging.DEBUG, logger="services.scheduler"):
        scheduler.run(max_rounds=2)

    sleeps = [getattr(record, "sleep_ms", None) for record in caplog.records]
    assert sleeps == [3750, None]
    assert [getattr(record, "round", None) for record in caplog.records] == [1, 2]
