#!/usr/bin/env python3
"""
File: backend.py
Author: Bastian Cerf
Date: 09/10/2025
Description:
    Abstract interface of the attendance backend collaborator.

    The backend registers client instances, reports their authorization
    status, hands out access tokens once an administrator approved the
    instance, and stores the attendance records.

    Implementations work with network resources. A context manager can
    be used to automatically manage their lifecycle.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from types import TracebackType
from typing import Any, Optional, Type

# Internal libraries
from core.attendance.day_accountant import AttendanceDay, EmploymentTemplate

__all__ = [
    "BackendException",
    "BackendNetworkException",
    "BackendRejectedException",
    "BackendLockedException",
    "BackendProtocolException",
    "HTTP_LOCKED",
    "InstanceState",
    "RegisterResponse",
    "InstanceStatus",
    "ClaimTokenResponse",
    "AttendanceMonth",
    "AttendanceUpsert",
    "AttendanceBackend",
]

# Response code of an administratively locked period
HTTP_LOCKED = 423

########################################################################
#                   Backend related errors declaration                 #
########################################################################


class BackendException(Exception):
    """Base type for all exceptions raised by a backend."""

    pass


class BackendNetworkException(BackendException):
    """Timeout or connection failure."""

    def __init__(self, message: str = "The backend is unreachable."):
        super().__init__(message)


class BackendRejectedException(BackendException):
    """The backend answered with a non-success response."""

    def __init__(self, code: int, message: Optional[str] = None):
        super().__init__(message or f"The backend rejected the request (HTTP {code}).")
        self.code = code


class BackendLockedException(BackendRejectedException):
    """The requested period is administratively locked."""

    def __init__(self, message: str = "The period is locked."):
        super().__init__(HTTP_LOCKED, message)


class BackendProtocolException(BackendException):
    """The backend answered with an unexpected body."""

    def __init__(self, message: str = "Unexpected backend response."):
        super().__init__(message)


########################################################################
#                      Wire data declaration                           #
########################################################################


class InstanceState(Enum):
    """Authorization status of a client instance."""

    UNKNOWN = "UNKNOWN"
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    REVOKED = "REVOKED"
    DEACTIVATED = "DEACTIVATED"

    @classmethod
    def from_wire(cls, value: Optional[str]) -> "InstanceState":
        """
        Parse a backend status. Unknown values map to `UNKNOWN`.
        """
        try:
            return cls((value or "").strip().upper())
        except ValueError:
            return cls.UNKNOWN

    @property
    def terminal(self) -> bool:
        """`True` for states where polling the status is pointless."""
        return self in (InstanceState.REVOKED, InstanceState.DEACTIVATED)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RegisterResponse:
    instance_id: str
    status: InstanceState


@dataclass(frozen=True)
class InstanceStatus:
    status: InstanceState
    display_name: Optional[str] = field(default=None)
    employment_template: EmploymentTemplate = field(default=EmploymentTemplate.DPP_DPC)
    afternoon_cutoff: Optional[str] = field(default=None)


@dataclass(frozen=True)
class ClaimTokenResponse:
    instance_token: str = field(repr=False)
    display_name: str


@dataclass(frozen=True)
class AttendanceMonth:
    days: list[AttendanceDay]
    instance_display_name: Optional[str] = field(default=None)


@dataclass(frozen=True)
class AttendanceUpsert:
    """
    Attendance write. A `None` time is sent explicitly and clears the
    value on the backend side.
    """

    date: str
    arrival: Optional[str]
    departure: Optional[str]


########################################################################
#                      Backend interface declaration                   #
########################################################################


class AttendanceBackend(ABC):
    """
    Attendance backend collaborator.

    Every method may raise:
        BackendNetworkException: Timeout or connection failure.
        BackendLockedException: The period is administratively locked.
        BackendRejectedException: Any other non-success response.
        BackendProtocolException: The response body is unusable.
    """

    @abstractmethod
    def register_instance(
        self,
        client_type: str,
        device_fingerprint: str,
        device_info: Optional[dict[str, Any]] = None,
        display_name: Optional[str] = None,
    ) -> RegisterResponse:
        """
        Register this client instance.

        Args:
            client_type (str): Client platform identifier.
            device_fingerprint (str): Stable identifier of the device.
            device_info (Optional[dict[str, Any]]): Free device details.
            display_name (Optional[str]): Name helping the
                administrator to recognize the device.
        """
        pass

    @abstractmethod
    def get_status(self, instance_id: str) -> InstanceStatus:
        """
        Get the authorization status and settings of an instance.
        """
        pass

    @abstractmethod
    def claim_token(self, instance_id: str) -> ClaimTokenResponse:
        """
        Claim the access token of an approved instance.
        """
        pass

    @abstractmethod
    def get_attendance_month(self, year: int, month: int, token: str) -> AttendanceMonth:
        """
        Read the attendance records of a month.

        Args:
            year (int): Year.
            month (int): Month, 1 to 12.
            token (str): Instance access token.
        """
        pass

    @abstractmethod
    def put_attendance(self, body: AttendanceUpsert, token: str) -> None:
        """
        Write the arrival and departure of a day.
        """
        pass

    def close(self) -> None:
        """
        Release the backend resources.
        """
        pass

    def __enter__(self) -> "AttendanceBackend":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> Optional[bool]:
        self.close()
        return False  # Propagate any exception from the context block
