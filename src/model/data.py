#!/usr/bin/env python3
"""
Provides dataclasses to communicate task results between the session
scheduler and the viewmodels.

---
DagmarNG - Attendance client

Author: Bastian Cerf
Copyright (C) 2025 Mecacerf SA
License: AGPL-3.0 <https://www.gnu.org/licenses/>
"""

# Standard libraries
from abc import ABC
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

# Internal imports
from core.backend import (
    AttendanceMonth,
    ClaimTokenResponse,
    InstanceStatus,
    RegisterResponse,
)

__all__ = [
    "ErrorKind",
    "IModelMessage",
    "ModelError",
    "InstanceRegistered",
    "InstanceStatusRead",
    "TokenClaimed",
    "MonthLoaded",
    "WriteDone",
]


class ErrorKind(Enum):
    """
    Failure categories, from the client point of view.
    """

    # Timeout or connection failure
    NETWORK = auto()
    # Non-success response other than a lock
    REJECTED = auto()
    # Administratively locked period
    LOCKED = auto()
    # Anything unexpected raised by a task
    INTERNAL = auto()


@dataclass(frozen=True)
class IModelMessage(ABC):
    """
    A generic asynchronous message posted by a task.
    """

    pass


@dataclass(frozen=True)
class ModelError(IModelMessage):
    """
    Error message container.

    Attributes:
        kind (ErrorKind): Failure category.
        message (str): Error description.
        code (Optional[int]): Backend response code, if any.
    """

    kind: ErrorKind
    message: str
    code: Optional[int] = field(default=None)

    @property
    def locked(self) -> bool:
        return self.kind is ErrorKind.LOCKED


@dataclass(frozen=True)
class InstanceRegistered(IModelMessage):
    """
    The instance has been registered.
    """

    response: RegisterResponse


@dataclass(frozen=True)
class InstanceStatusRead(IModelMessage):
    """
    The instance status has been read.
    """

    status: InstanceStatus


@dataclass(frozen=True)
class TokenClaimed(IModelMessage):
    """
    The access token has been claimed.
    """

    response: ClaimTokenResponse


@dataclass(frozen=True)
class MonthLoaded(IModelMessage):
    """
    The attendance records of a month have been read.

    Attributes:
        year (int): Loaded year.
        month (int): Loaded month.
        data (AttendanceMonth): Backend records.
    """

    year: int
    month: int
    data: AttendanceMonth


@dataclass(frozen=True)
class WriteDone(IModelMessage):
    """
    A write or a flush attempt finished. Failures are absorbed by the
    offline queue and described by the outcome.

    Attributes:
        date (Optional[str]): Written date, `None` for a flush.
        outcome (str): Outcome name.
        pending (int): Number of edits still waiting to be synced.
    """

    date: Optional[str]
    outcome: str
    pending: int
