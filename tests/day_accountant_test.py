#!/usr/bin/env python3
"""
File: day_accountant_test.py
Author: Bastian Cerf
Date: 07/10/2025
Description:
    Unit test the per-day attendance metrics.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import pytest

# Internal libraries
from core.attendance import *

CUTOFF = 17 * 60

HPP = EmploymentTemplate.HPP
DPP = EmploymentTemplate.DPP_DPC


def compute(date: str, arrival, departure, template=HPP) -> DayComputed:
    return compute_day(AttendanceDay(date, arrival, departure), template, CUTOFF)


########################################################################
#                           Incomplete days                            #
########################################################################


@pytest.mark.parametrize(
    "arrival, departure",
    [(None, None), ("08:00", None), (None, "16:00"), ("16:00", "08:00"), ("08:00", "08:00")],
)
def test_incomplete_day(arrival, departure):
    result = compute("2025-03-10", arrival, departure)
    assert result.worked_mins is None
    assert result.break_mins == 0
    assert result.afternoon_mins == 0
    assert result.weekend_holiday_mins == 0
    assert result.break_label is None


def test_flags_without_times():
    """
    Weekend and holiday flags don't depend on the times.
    """
    saturday = compute("2025-03-08", None, None)
    assert saturday.is_weekend
    assert saturday.is_weekend_or_holiday
    assert saturday.holiday_name is None

    labour_day = compute("2025-05-01", None, None, DPP)
    assert not labour_day.is_weekend
    assert labour_day.holiday_name == "Svátek práce"
    assert labour_day.is_weekend_or_holiday


########################################################################
#                          Full-time template                          #
########################################################################


def test_full_time_single_break():
    result = compute("2025-03-10", "08:00", "16:30")
    assert result.worked_mins == 8 * 60
    assert result.break_mins == 30
    assert result.break_label == "−0:30 pauza"
    assert result.break_tooltip == "Pauza 0:30 pauza (14:00–14:30)"
    assert result.afternoon_mins == 0
    assert result.weekend_holiday_mins == 0


def test_full_time_afternoon():
    result = compute("2025-03-10", "08:00", "18:00")
    assert result.worked_mins == 570
    assert result.afternoon_mins == 60


def test_full_time_two_breaks():
    result = compute("2025-03-10", "06:00", "19:00")
    assert result.worked_mins == 12 * 60
    assert result.break_mins == 60
    assert result.break_label == "−1:00 pauza"
    assert result.break_tooltip == "Pauzy 1:00 pauza (12:00–12:30, 18:00–18:30)"
    # 17:00-18:00 and 18:30-19:00
    assert result.afternoon_mins == 90


def test_full_time_custom_cutoff():
    day = AttendanceDay("2025-03-10", "08:00", "16:30")
    result = compute_day(day, HPP, parse_cutoff_to_minutes("15:00"))
    assert result.afternoon_mins == 90


def test_full_time_weekend_and_holiday():
    saturday = compute("2025-03-08", "08:00", "12:00")
    assert saturday.worked_mins == 240
    assert saturday.weekend_holiday_mins == 240
    assert saturday.break_label is None

    good_friday = compute("2025-04-18", "08:00", "16:30")
    assert good_friday.weekend_holiday_mins == 480


########################################################################
#                           Other templates                            #
########################################################################


def test_contract_raw_time():
    """
    No break, afternoon or weekend tracking for contracts.
    """
    result = compute("2025-03-08", "06:00", "19:00", DPP)
    assert result.worked_mins == 13 * 60
    assert result.break_mins == 0
    assert result.break_label is None
    assert result.break_tooltip is None
    assert result.afternoon_mins == 0
    assert result.weekend_holiday_mins == 0
    assert result.is_weekend


def test_template_from_wire():
    assert EmploymentTemplate.from_wire("HPP") is HPP
    assert EmploymentTemplate.from_wire(" hpp ") is HPP
    assert EmploymentTemplate.from_wire("DPP_DPC") is DPP
    assert EmploymentTemplate.from_wire("DPC") is DPP
    assert EmploymentTemplate.from_wire(None) is DPP
    assert EmploymentTemplate.FULL_TIME is HPP


def test_break_label_format():
    assert break_label(30) == "−0:30 pauza"
    assert break_label(90) == "−1:30 pauza"
    assert break_tooltip([]) == ""
