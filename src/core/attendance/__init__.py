#!/usr/bin/env python3
"""
Attendance accounting engine: time parsing, holidays, breaks, per-day
metrics and monthly totals.

---
DagmarNG - Attendance client

Author: Bastian Cerf
Copyright (C) 2025 Mecacerf SA
License: AGPL-3.0 <https://www.gnu.org/licenses/>
"""

from .time_parser import *
from .holiday_calendar import *
from .break_segmenter import *
from .day_accountant import *
from .month_aggregator import *
