#!/usr/bin/env python3
"""
File: day_accountant.py
Author: Bastian Cerf
Date: 07/10/2025
Description:
    Per-day attendance accounting.

    Combines the arrival and departure of a day with its weekend and
    holiday flags and, for the full-time template, with the mandatory
    breaks, to produce the metrics displayed for the day.

    An incomplete day (missing time, or departure not after arrival) has
    no worked time at all (`None`), which is different from a day worked
    for zero minutes.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# Internal libraries
from .time_parser import MINUTES_PER_DAY, parse_time_to_minutes, minutes_to_hhmm
from .holiday_calendar import HolidayCalendar, CZECH_CALENDAR
from .break_segmenter import (
    BreakWindow,
    BREAK_DURATION,
    compute_breaks,
    subtract_breaks,
    overlap_minutes,
)

__all__ = [
    "EmploymentTemplate",
    "AttendanceDay",
    "DayComputed",
    "compute_day",
    "break_label",
    "break_tooltip",
]


class EmploymentTemplate(Enum):
    """
    Employment categories known by the backend.
    """

    # Contract work (DPP / DPČ): raw time only
    DPP_DPC = "DPP_DPC"
    # Full-time employment (HPP): breaks, afternoon and weekend tracking
    HPP = "HPP"

    FULL_TIME = HPP

    @classmethod
    def from_wire(cls, value: Optional[str]) -> "EmploymentTemplate":
        """
        Parse the backend value. Anything but "HPP" is a contract.
        """
        if (value or "").strip().upper() == cls.HPP.value:
            return cls.HPP
        return cls.DPP_DPC

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class AttendanceDay:
    """
    Attendance record of one calendar day.

    Attributes:
        date (str): ISO date "YYYY-MM-DD", unique key.
        arrival (Optional[str]): Arrival time "HH:MM".
        departure (Optional[str]): Departure time "HH:MM".
        planned_arrival (Optional[str]): Planned arrival, read-only
            reference value from the backend.
        planned_departure (Optional[str]): Planned departure, read-only
            reference value from the backend.
    """

    date: str
    arrival: Optional[str] = field(default=None)
    departure: Optional[str] = field(default=None)
    planned_arrival: Optional[str] = field(default=None)
    planned_departure: Optional[str] = field(default=None)


@dataclass(frozen=True)
class DayComputed:
    """
    Computed metrics of one day. All durations are in minutes.
    """

    worked_mins: Optional[int]
    break_mins: int
    break_label: Optional[str]
    break_tooltip: Optional[str]
    afternoon_mins: int
    weekend_holiday_mins: int
    is_weekend: bool
    holiday_name: Optional[str]
    is_weekend_or_holiday: bool


def break_label(minutes: int) -> str:
    """
    Format a total break duration, e.g. 30 -> "−0:30 pauza".
    """
    return f"−{minutes // 60}:{minutes % 60:02d} pauza"


def break_tooltip(windows: list[BreakWindow]) -> str:
    """
    Describe the break windows, e.g.
    "Pauza 0:30 pauza (14:00–14:30)".
    """
    if not windows:
        return ""

    parts = ", ".join(
        f"{minutes_to_hhmm(w.start)}–{minutes_to_hhmm(w.end)}" for w in windows
    )
    total = len(windows) * BREAK_DURATION
    prefix = "Pauza" if len(windows) == 1 else "Pauzy"
    return f"{prefix} {break_label(total).replace('−', '')} ({parts})"


def compute_day(
    day: AttendanceDay,
    template: EmploymentTemplate,
    cutoff_minutes: int,
    holidays: HolidayCalendar = CZECH_CALENDAR,
) -> DayComputed:
    """
    Compute the metrics of a day.

    Args:
        day (AttendanceDay): Day record.
        template (EmploymentTemplate): Employment template in use.
        cutoff_minutes (int): Time after which worked minutes count as
            afternoon minutes.
        holidays (HolidayCalendar): Public holidays calendar.

    Returns:
        DayComputed: Day metrics.
    """
    is_weekend = holidays.is_weekend(day.date)
    holiday_name = holidays.holiday_name(day.date)
    is_weekend_or_holiday = is_weekend or holiday_name is not None

    def empty(worked: Optional[int]) -> DayComputed:
        return DayComputed(
            worked_mins=worked,
            break_mins=0,
            break_label=None,
            break_tooltip=None,
            afternoon_mins=0,
            weekend_holiday_mins=0,
            is_weekend=is_weekend,
            holiday_name=holiday_name,
            is_weekend_or_holiday=is_weekend_or_holiday,
        )

    arrival = parse_time_to_minutes(day.arrival)
    departure = parse_time_to_minutes(day.departure)
    if arrival is None or departure is None or departure <= arrival:
        return empty(None)

    # Contracts: raw presence time, nothing else is tracked
    if template is not EmploymentTemplate.HPP:
        return empty(departure - arrival)

    breaks = compute_breaks(arrival, departure)
    segments = subtract_breaks(arrival, departure, breaks)
    worked = sum(end - start for start, end in segments)
    afternoon = sum(
        overlap_minutes(start, end, cutoff_minutes, MINUTES_PER_DAY)
        for start, end in segments
    )
    break_mins = len(breaks) * BREAK_DURATION

    return DayComputed(
        worked_mins=worked,
        break_mins=break_mins,
        break_label=break_label(break_mins) if break_mins > 0 else None,
        break_tooltip=break_tooltip(breaks) if breaks else None,
        afternoon_mins=afternoon,
        weekend_holiday_mins=worked if is_weekend_or_holiday else 0,
        is_weekend=is_weekend,
        holiday_name=holiday_name,
        is_weekend_or_holiday=is_weekend_or_holiday,
    )
