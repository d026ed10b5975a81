#!/usr/bin/env python3
"""
File: holiday_calendar.py
Author: Bastian Cerf
Date: 06/10/2025
Description:
    Public holidays, weekends and working days.

    A country calendar is built from a table of fixed month-day
    holidays and from moveable holidays defined as an offset to the
    Gregorian Easter Sunday. The holiday table of a year is a pure
    function of the year and is cached once computed.

    The Czech calendar is provided and used by default.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import calendar
import datetime as dt
import re
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional

__all__ = [
    "DateLike",
    "HolidayCalendar",
    "CZECH_CALENDAR",
    "easter_sunday",
    "parse_iso_date",
]

DateLike = str | dt.date

# Daily schedule used to express the monthly working fund in hours
WORKING_DAY_HOURS = 8

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def parse_iso_date(value: DateLike) -> Optional[dt.date]:
    """
    Convert an ISO "YYYY-MM-DD" string to a date.

    Returns:
        Optional[dt.date]: The date, or `None` if the string is
            malformed or not a real calendar date.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value

    match = _ISO_DATE.match(value)
    if not match:
        return None
    try:
        return dt.date(*map(int, match.groups()))
    except ValueError:
        return None


def easter_sunday(year: int) -> dt.date:
    """
    Compute the Gregorian Easter Sunday with the anonymous century /
    epact algorithm.
    """
    a = year % 19
    b = year // 100
    c = year % 100
    d = b // 4
    e = b % 4
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i = c // 4
    k = c % 4
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = ((h + l - 7 * m + 114) % 31) + 1
    return dt.date(year, month, day)


class HolidayCalendar:
    """
    Public holidays of one country.
    """

    def __init__(
        self,
        country: str,
        fixed: Mapping[tuple[int, int], str],
        easter_relative: Mapping[int, str],
    ):
        """
        Args:
            country (str): Country code, used for logging and display.
            fixed (Mapping[tuple[int, int], str]): `(month, day)` to
                holiday name.
            easter_relative (Mapping[int, str]): Offset in days from
                Easter Sunday to holiday name.
        """
        self._country = country
        self._fixed = dict(fixed)
        self._easter_relative = dict(easter_relative)
        # Cache bound to this instance, a year table never changes
        self._holidays_for_year = lru_cache(maxsize=None)(self._build_year)

    @property
    def country(self) -> str:
        return self._country

    def _build_year(self, year: int) -> Mapping[dt.date, str]:
        holidays = {
            dt.date(year, month, day): name
            for (month, day), name in self._fixed.items()
        }

        easter = easter_sunday(year)
        for offset, name in self._easter_relative.items():
            holidays[easter + dt.timedelta(days=offset)] = name

        return MappingProxyType(holidays)

    def holidays(self, year: int) -> Mapping[dt.date, str]:
        """
        Returns:
            Mapping[dt.date, str]: Read-only table of the year's holidays.
        """
        return self._holidays_for_year(year)

    def holiday_name(self, date: DateLike) -> Optional[str]:
        """
        Get the name of the holiday falling on the given date.

        Args:
            date (DateLike): ISO date string or date.

        Returns:
            Optional[str]: Holiday name, `None` on a regular day or for
                a malformed date.
        """
        day = parse_iso_date(date)
        if day is None:
            return None
        return self.holidays(day.year).get(day)

    def is_weekend(self, date: DateLike) -> bool:
        """
        Returns:
            bool: `True` on Saturday and Sunday. A malformed date is not
                a weekend.
        """
        day = parse_iso_date(date)
        return day is not None and day.weekday() >= 5

    def is_working_day(self, date: DateLike) -> bool:
        day = parse_iso_date(date)
        if day is None:
            return False
        return not self.is_weekend(day) and self.holiday_name(day) is None

    def working_days_in_month(self, year: int, month: int) -> int:
        """
        Count the days of the month that are neither weekend days nor
        public holidays.
        """
        days_in_month = calendar.monthrange(year, month)[1]
        return sum(
            1
            for day in range(1, days_in_month + 1)
            if self.is_working_day(dt.date(year, month, day))
        )

    def working_fund_hours(self, year: int, month: int) -> int:
        """
        Monthly working fund, expressed in hours of regular days.
        """
        return self.working_days_in_month(year, month) * WORKING_DAY_HOURS

    def __str__(self) -> str:
        return f"HolidayCalendar[{self._country}]"


CZECH_CALENDAR = HolidayCalendar(
    "CZ",
    fixed={
        (1, 1): "Nový rok / Den obnovy samostatného českého státu",
        (5, 1): "Svátek práce",
        (5, 8): "Den vítězství",
        (7, 5): "Cyril a Metoděj",
        (7, 6): "Upálení mistra Jana Husa",
        (9, 28): "Den české státnosti",
        (10, 28): "Vznik samostatného československého státu",
        (11, 17): "Den boje za svobodu a demokracii",
        (12, 24): "Štědrý den",
        (12, 25): "1. svátek vánoční",
        (12, 26): "2. svátek vánoční",
    },
    easter_relative={
        -2: "Velký pátek",
        1: "Velikonoční pondělí",
    },
)
