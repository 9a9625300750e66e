"""Unit tests for the stagnation monitor (history window + restart cooldown)."""

import pytest

from life_engine import LifeGrid, StagnationMonitor


def snap(i: int) -> bytes:
    return bytes([i])


def test_history_is_fifo_and_bounded():
    monitor = StagnationMonitor(max_history=10)
    for i in range(13):
        assert monitor.observe(snap(i), now=100.0) is False
    assert len(monitor.history) == 10
    assert list(monitor.history) == [snap(i) for i in range(3, 13)]


def test_evicted_snapshot_is_no_longer_a_repeat():
    monitor = StagnationMonitor(max_history=3)
    for i in range(4):
        monitor.observe(snap(i), now=100.0)
    assert monitor.observe(snap(0), now=100.0) is False
    assert list(monitor.history) == [snap(2), snap(3), snap(0)]


def test_repeat_inside_cooldown_leaves_history_alone():
    monitor = StagnationMonitor(restart_after=10.0, last_restart=0.0)
    monitor.observe(snap(1), now=1.0)
    monitor.observe(snap(2), now=2.0)

    assert monitor.observe(snap(1), now=3.0) is False
    assert list(monitor.history) == [snap(1), snap(2)]
    assert monitor.repeats == 1


@pytest.mark.parametrize(
    "now,expected",
    [(5.0, False), (10.0, False), (10.001, True), (30.0, True)],
)
def test_cooldown_is_strict(now, expected):
    monitor = StagnationMonitor(restart_after=10.0, last_restart=0.0)
    monitor.observe(snap(7), now=0.0)
    assert monitor.observe(snap(7), now=now) is expected


def test_restart_verdict_clears_history():
    monitor = StagnationMonitor(restart_after=1.0, last_restart=0.0)
    monitor.observe(snap(1), now=0.5)
    monitor.observe(snap(2), now=0.6)
    assert monitor.observe(snap(2), now=5.0) is True
    assert len(monitor.history) == 0


def test_cycle_period_counts_back_to_match():
    monitor = StagnationMonitor(restart_after=100.0)
    for i in (1, 2, 3):
        monitor.observe(snap(i), now=1.0)
    monitor.observe(snap(1), now=1.0)
    assert monitor.cycle_period == 3
    monitor.observe(snap(3), now=1.0)
    assert monitor.cycle_period == 1
    monitor.observe(snap(9), now=1.0)
    assert monitor.cycle_period == 0


def test_still_life_repeats_every_generation():
    monitor = StagnationMonitor(restart_after=0.0, last_restart=0.0)
    grid = LifeGrid.from_cells(6, 6, [(1, 1), (2, 1), (1, 2), (2, 2)])

    grid = grid.step()
    assert monitor.observe(grid.snapshot(), now=1.0) is False
    grid = grid.step()
    assert monitor.observe(grid.snapshot(), now=1.0) is True
    assert monitor.cycle_period == 1


def test_reset_clears_history_and_restarts_cooldown():
    monitor = StagnationMonitor(restart_after=10.0)
    monitor.observe(snap(1), now=50.0)
    monitor.observe(snap(1), now=50.0)

    monitor.reset(now=60.0)
    assert len(monitor.history) == 0
    assert monitor.last_restart == 60.0
    assert monitor.repeats == 0
    assert monitor.cycle_period == 0


def test_state_and_cooldown_remaining():
    monitor = StagnationMonitor(restart_after=10.0, last_restart=5.0)
    assert monitor.state(now=8.0) == StagnationMonitor.COOLDOWN
    assert monitor.cooldown_remaining(now=8.0) == pytest.approx(7.0)
    assert monitor.state(now=15.0) == StagnationMonitor.COOLDOWN
    assert monitor.state(now=15.5) == StagnationMonitor.TRACKING
    assert monitor.cooldown_remaining(now=40.0) == 0.0


@pytest.mark.parametrize(
    "kwargs",
    [{"max_history": 0}, {"max_history": -3}, {"restart_after": -1.0}],
)
def test_rejects_bad_settings(kwargs):
    with pytest.raises(ValueError):
        StagnationMonitor(**kwargs)
