#!/usr/bin/env python3
"""
DagmarNG - Attendance client

Author: Bastian Cerf
Copyright (C) 2025 Mecacerf SA
License: AGPL-3.0 <https://www.gnu.org/licenses/>
"""

# Expose everything from data, queue and scheduler modules
from .data import *
from .sync_queue import OfflineSyncQueue, PendingEdit, WriteOutcome, period_of
from .session_scheduler import SessionScheduler, CancellationToken

__all__ = [
    "ErrorKind",
    "IModelMessage",
    "ModelError",
    "InstanceRegistered",
    "InstanceStatusRead",
    "TokenClaimed",
    "MonthLoaded",
    "WriteDone",
    "OfflineSyncQueue",
    "PendingEdit",
    "WriteOutcome",
    "period_of",
    "SessionScheduler",
    "CancellationToken",
]
