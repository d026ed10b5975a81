#!/usr/bin/env python3
"""
File: test_constants.py
Author: Bastian Cerf
Date: 18/05/2025
Description:
    Declaration of general test constants.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

import datetime as dt

# Test instance identity
TEST_INSTANCE_ID = "b6f1c0de-0001"
TEST_INSTANCE_TOKEN = "tok-7f3a9e"
TEST_DISPLAY_NAME = "Meca Cerf"
TEST_DEVICE_NAME = "Recepce"
TEST_CLIENT_TYPE = "LINUX"

# 10 March 2025 is a monday, March 2025 has no public holiday
TEST_NOW = dt.datetime(year=2025, month=3, day=10, hour=8, minute=15)
TEST_YEAR = 2025
TEST_MONTH = 3
TEST_DATE = "2025-03-10"
# Working days of March 2025
TEST_MONTH_WORKING_DAYS = 21

# Short polling interval to keep the lifecycle tests fast
TEST_POLL_INTERVAL = 0.05

# Tests assets destination folder
TEST_ASSETS_DST_FOLDER = ".test-cache/assets/"
