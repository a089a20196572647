"""Tests for the elapsed-time countdown."""
from __future__ import annotations

from conquest.timer import Timer


def test_timer_fires_once_when_duration_elapses() -> None:
    timer = Timer(100.0)
    timer.start()
    assert timer.update(50.0) is False
    assert timer.progress == 0.5
    assert timer.remaining_ms == 50.0
    assert timer.update(50.0) is True
    assert not timer.active
    assert timer.update(50.0) is False


def test_inactive_timer_does_not_advance() -> None:
    timer = Timer(100.0)
    assert timer.update(500.0) is False
    assert timer.elapsed_ms == 0.0
    assert timer.progress == 0.0


def test_rearm_carries_overshoot() -> None:
    timer = Timer(100.0)
    timer.start()
    assert timer.update(130.0) is True
    timer.rearm()
    assert timer.active
    assert timer.elapsed_ms == 30.0
    assert timer.update(69.0) is False
    assert timer.update(1.0) is True


def test_restart_resets_elapsed_time() -> None:
    timer = Timer(100.0)
    timer.start()
    timer.update(80.0)
    timer.start()
    assert timer.update(80.0) is False
    timer.stop()
    assert timer.progress == 0.0
