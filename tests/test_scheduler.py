from __future__ import annotations

import threading
import time

import pytest

from tiddlygit.scheduler import PushScheduler

from helpers import wait_for


class Trigger:
    def __init__(self) -> None:
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self) -> None:
        with self._lock:
            self.calls += 1


@pytest.fixture
def trigger():
    return Trigger()


def test_debounce_fires_once_after_quiet_period(trigger):
    sched = PushScheduler(trigger, debounce_seconds=0.2, interval_seconds=0)
    try:
        for _ in range(5):
            sched.arm_debounce()
            time.sleep(0.05)
        assert trigger.calls == 0
        assert sched.status()["debounce_armed"] is True

        assert wait_for(lambda: trigger.calls == 1, timeout=3)
        time.sleep(0.4)
        assert trigger.calls == 1
        assert sched.status()["debounce_armed"] is False
    finally:
        sched.cancel()


def test_disabled_debounce_never_arms(trigger):
    sched = PushScheduler(trigger, debounce_seconds=0, interval_seconds=0)
    sched.arm_debounce()

    assert sched.status() == {"debounce_armed": False, "interval_running": False}
    time.sleep(0.1)
    assert trigger.calls == 0


def test_interval_fires_repeatedly(trigger):
    sched = PushScheduler(trigger, debounce_seconds=0, interval_seconds=0.1)
    try:
        sched.start_interval()
        sched.start_interval()
        assert wait_for(lambda: trigger.calls >= 3, timeout=3)
        assert sched.status()["interval_running"] is True
    finally:
        sched.cancel()


def test_disabled_interval_never_starts(trigger):
    sched = PushScheduler(trigger, debounce_seconds=0, interval_seconds=-1)
    sched.start_interval()

    assert sched.status()["interval_running"] is False


def test_cancel_stops_both_timers(trigger):
    sched = PushScheduler(trigger, debounce_seconds=0.1, interval_seconds=0.1)
    sched.start_interval()
    sched.arm_debounce()
    sched.cancel()

    time.sleep(0.3)
    assert trigger.calls == 0
    assert sched.status() == {"debounce_armed": False, "interval_running": False}

    # Arming after cancel is ignored
    sched.arm_debounce()
    assert sched.status()["debounce_armed"] is False


def test_replaced_debounce_timer_does_not_fire(trigger):
    sched = PushScheduler(trigger, debounce_seconds=30, interval_seconds=0)
    try:
        sched.arm_debounce()
        # A callback from a timer that was re-armed after its wait ended
        stale = threading.Thread(target=sched._fire_debounce)
        stale.start()
        stale.join(timeout=5)

        assert trigger.calls == 0
        assert sched.status()["debounce_armed"] is True
    finally:
        sched.cancel()
