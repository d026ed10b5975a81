#!/usr/bin/env python3
"""
File: month_aggregator.py
Author: Bastian Cerf
Date: 08/10/2025
Description:
    Monthly totals of the per-day attendance metrics.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
from dataclasses import dataclass
from typing import Iterable

# Internal libraries
from .day_accountant import AttendanceDay, DayComputed, EmploymentTemplate, compute_day
from .holiday_calendar import HolidayCalendar, CZECH_CALENDAR

__all__ = ["MonthStats", "aggregate_month", "sum_computed"]


@dataclass(frozen=True)
class MonthStats:
    """
    Sums over a month, in minutes.
    """

    total_mins: int = 0
    break_mins: int = 0
    afternoon_mins: int = 0
    weekend_holiday_mins: int = 0


def sum_computed(
    computed: Iterable[DayComputed], template: EmploymentTemplate
) -> MonthStats:
    """
    Sum already computed days. Incomplete days count for 0.

    Breaks, afternoon and weekend/holiday minutes are only tracked for
    the full-time template and are forced to 0 for any other one.
    """
    total = breaks = afternoon = weekend_holiday = 0
    for day in computed:
        total += day.worked_mins or 0
        breaks += day.break_mins
        afternoon += day.afternoon_mins
        weekend_holiday += day.weekend_holiday_mins

    if template is not EmploymentTemplate.HPP:
        return MonthStats(total_mins=total)

    return MonthStats(total, breaks, afternoon, weekend_holiday)


def aggregate_month(
    days: Iterable[AttendanceDay],
    template: EmploymentTemplate,
    cutoff_minutes: int,
    holidays: HolidayCalendar = CZECH_CALENDAR,
) -> MonthStats:
    """
    Compute every day of the month and sum their metrics.
    """
    return sum_computed(
        (compute_day(day, template, cutoff_minutes, holidays) for day in days),
        template,
    )
