#!/usr/bin/env python3
"""
File: debouncer_test.py
Author: Bastian Cerf
Date: 09/10/2025
Description:
    Unit test the per-key restartable timers.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import pytest

# Internal libraries
from .classes_mocks import FakeClock
from common.debouncer import Debouncer


def test_release_after_quiet_period(clock: FakeClock):
    debouncer = Debouncer[str](0.6, clock=clock)
    debouncer.schedule("arrival", "8")

    clock.advance(0.5)
    assert debouncer.poll() == []
    assert debouncer.pending("arrival") == "8"

    clock.advance(0.2)
    assert debouncer.poll() == [("arrival", "8")]
    assert len(debouncer) == 0
    assert debouncer.poll() == []


def test_restart_keeps_last_value(clock: FakeClock):
    """
    Each change restarts the timer, only the last value is released.
    """
    debouncer = Debouncer[str](0.6, clock=clock)
    for raw in ("0", "08", "081", "0815"):
        debouncer.schedule("arrival", raw)
        clock.advance(0.4)
        assert debouncer.poll() == []

    clock.advance(0.3)
    assert debouncer.poll() == [("arrival", "0815")]


def test_keys_are_independent(clock: FakeClock):
    debouncer = Debouncer[str](0.6, clock=clock)
    debouncer.schedule("arrival", "8")
    clock.advance(0.4)
    debouncer.schedule("departure", "16")

    clock.advance(0.3)
    assert debouncer.poll() == [("arrival", "8")]
    clock.advance(0.4)
    assert debouncer.poll() == [("departure", "16")]


def test_cancel_and_flush(clock: FakeClock):
    debouncer = Debouncer[str](0.6, clock=clock)
    debouncer.schedule("a", "1")
    debouncer.schedule("b", "2")
    debouncer.schedule("c", "3")
    # Restarting moves the key to the end
    debouncer.schedule("a", "4")

    assert debouncer.cancel("b")
    assert not debouncer.cancel("b")
    assert debouncer.flush() == [("c", "3"), ("a", "4")]
    assert len(debouncer) == 0


def test_negative_delay_raises():
    with pytest.raises(ValueError):
        Debouncer(-1.0)
