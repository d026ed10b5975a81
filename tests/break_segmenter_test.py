#!/usr/bin/env python3
"""
File: break_segmenter_test.py
Author: Bastian Cerf
Date: 07/10/2025
Description:
    Unit test the mandatory breaks derivation.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Internal libraries
from core.attendance.break_segmenter import *

H = 60  # Minutes per hour


def test_no_break_for_short_shift():
    assert compute_breaks(8 * H, 8 * H + 389) == []
    assert subtract_breaks(8 * H, 12 * H, []) == [(8 * H, 12 * H)]


def test_single_break_anchored_to_start():
    breaks = compute_breaks(8 * H, 16 * H + 30)
    assert breaks == [BreakWindow(14 * H, 14 * H + 30)]
    assert breaks[0].duration == BREAK_DURATION

    segments = subtract_breaks(8 * H, 16 * H + 30, breaks)
    assert segments == [(8 * H, 14 * H), (14 * H + 30, 16 * H + 30)]


def test_break_at_shift_end_leaves_no_empty_segment():
    """
    A shift of exactly 6h30 ends with its break.
    """
    breaks = compute_breaks(8 * H, 14 * H + 30)
    assert breaks == [BreakWindow(14 * H, 14 * H + 30)]
    assert subtract_breaks(8 * H, 14 * H + 30, breaks) == [(8 * H, 14 * H)]


def test_two_breaks():
    breaks = compute_breaks(6 * H, 19 * H)
    assert breaks == [
        BreakWindow(12 * H, 12 * H + 30),
        BreakWindow(18 * H, 18 * H + 30),
    ]
    assert subtract_breaks(6 * H, 19 * H, breaks) == [
        (6 * H, 12 * H),
        (12 * H + 30, 18 * H),
        (18 * H + 30, 19 * H),
    ]

    # 12h29 is not long enough for the second break
    assert len(compute_breaks(6 * H, 6 * H + 749)) == 1


def test_overlap_minutes():
    assert overlap_minutes(8 * H, 18 * H, 17 * H, 24 * H) == H
    assert overlap_minutes(8 * H, 12 * H, 17 * H, 24 * H) == 0
    assert overlap_minutes(17 * H, 18 * H, 8 * H, 24 * H) == H
