#!/usr/bin/env python3
"""
File: break_segmenter.py
Author: Bastian Cerf
Date: 07/10/2025
Description:
    Mandatory unpaid breaks of the full-time employment template.

    A shift of at least 6h30 gets a 30 minutes break starting 6 hours
    after the shift start. A shift of at least 12h30 gets a second one
    starting 12 hours after the shift start. Breaks are anchored to the
    shift start, not to the worked time net of previous breaks.

    All values are minutes since midnight.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
from dataclasses import dataclass

__all__ = [
    "BreakWindow",
    "BREAK_DURATION",
    "compute_breaks",
    "subtract_breaks",
    "overlap_minutes",
]

BREAK_DURATION = 30

# (offset from shift start, minimal shift duration) for each break
_BREAK_RULES = (
    (6 * 60, 6 * 60 + BREAK_DURATION),
    (12 * 60, 12 * 60 + BREAK_DURATION),
)


@dataclass(frozen=True)
class BreakWindow:
    """
    A `[start, end)` break interval.
    """

    start: int
    end: int

    @property
    def duration(self) -> int:
        return self.end - self.start


def compute_breaks(start: int, end: int) -> list[BreakWindow]:
    """
    Derive the break windows of a shift.

    Args:
        start (int): Shift start.
        end (int): Shift end.

    Returns:
        list[BreakWindow]: Ordered, non-overlapping break windows. Each
            window ends at or before the shift end.
    """
    duration = end - start
    return [
        BreakWindow(start + offset, start + offset + BREAK_DURATION)
        for offset, min_duration in _BREAK_RULES
        if duration >= min_duration
    ]


def subtract_breaks(
    start: int, end: int, breaks: list[BreakWindow]
) -> list[tuple[int, int]]:
    """
    Remove the break windows from the `[start, end)` shift.

    Returns:
        list[tuple[int, int]]: Ordered working `(start, end)` segments,
            without empty segments.
    """
    if not breaks:
        return [(start, end)]

    segments: list[tuple[int, int]] = []
    cursor = start
    for window in breaks:
        if window.start > cursor:
            segments.append((cursor, window.start))
        cursor = max(cursor, window.end)
    if cursor < end:
        segments.append((cursor, end))

    return [(s, e) for s, e in segments if e > s]


def overlap_minutes(a_start: int, a_end: int, b_start: int, b_end: int) -> int:
    """
    Length of the intersection of two intervals, 0 if disjoint.
    """
    return max(0, min(a_end, b_end) - max(a_start, b_start))
