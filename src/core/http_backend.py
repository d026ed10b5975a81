#!/usr/bin/env python3
"""
File: http_backend.py
Author: Bastian Cerf
Date: 09/10/2025
Description:
    HTTP implementation of the attendance backend, built on a
    `requests.Session`.

    Wire conventions:
    - JSON bodies with snake_case keys.
    - Dates are ISO "YYYY-MM-DD", times are 24-hour "HH:MM".
    - Month queries use a zero-padded 2-digit month.
    - An absent time in a write is sent as an explicit JSON `null`,
      which clears the value on the backend side.
    - The attendance endpoints require a bearer token.
    - HTTP 423 means the period is administratively locked.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging
from typing import Any, Optional

# Third-party libraries
import requests

# Internal libraries
from core.backend import *
from core.attendance.day_accountant import AttendanceDay, EmploymentTemplate

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://dagmar.hcasc.cz"
DEFAULT_API_PREFIX = "/api/v1"

# Connect / read timeouts in seconds
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 15.0


def _opt_str(data: dict[str, Any], key: str) -> Optional[str]:
    """
    Read an optional string. Missing, null and empty values are `None`.
    """
    value = data.get(key)
    if value is None:
        return None
    value = str(value)
    return value if value else None


class HttpBackend(AttendanceBackend):
    """
    Attendance backend reached over HTTPS.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_prefix: str = DEFAULT_API_PREFIX,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            base_url (str): Backend root URL.
            api_prefix (str): Path prefix of the API.
            connect_timeout (float): Connection timeout in seconds.
            read_timeout (float): Timeout between two received bytes, in
                seconds. The overall call duration is bounded by the
                scheduler running the request.
            session (Optional[requests.Session]): Session to use. A new
                one is created by default.
        """
        self._root = base_url.rstrip("/") + "/" + api_prefix.strip("/")
        self._timeout = (connect_timeout, read_timeout)
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def __request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        """
        Perform a request and decode the JSON response.

        Returns:
            Any: Decoded JSON body, `None` if the body is empty.

        Raises:
            See `AttendanceBackend`.
        """
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = self._root + path
        try:
            response = self._session.request(
                method, url, headers=headers, timeout=self._timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e.__class__.__name__}.")
            raise BackendNetworkException(f"{method} {path} failed: {e}") from e

        if not response.ok:
            logger.warning(f"{method} {path} failed: {response.status_code} {response.text}")
            if response.status_code == HTTP_LOCKED:
                raise BackendLockedException(f"{method} {path}: period is locked.")
            raise BackendRejectedException(
                response.status_code,
                f"{method} {path} failed: HTTP {response.status_code}",
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendProtocolException(f"{method} {path}: invalid JSON body.") from e

    def __json_object(self, body: Any, what: str) -> dict[str, Any]:
        if not isinstance(body, dict):
            raise BackendProtocolException(f"{what}: a JSON object was expected.")
        return body

    def register_instance(
        self,
        client_type: str,
        device_fingerprint: str,
        device_info: Optional[dict[str, Any]] = None,
        display_name: Optional[str] = None,
    ) -> RegisterResponse:
        payload: dict[str, Any] = {
            "client_type": client_type,
            "device_fingerprint": device_fingerprint,
        }
        if device_info is not None:
            payload["device_info"] = device_info
        if display_name and display_name.strip():
            payload["display_name"] = display_name.strip()

        body = self.__json_object(
            self.__request("POST", "/instances/register", json=payload), "register"
        )
        try:
            return RegisterResponse(
                instance_id=str(body["instance_id"]),
                status=InstanceState.from_wire(body["status"]),
            )
        except KeyError as e:
            raise BackendProtocolException(f"register: missing field {e}.") from e

    def get_status(self, instance_id: str) -> InstanceStatus:
        body = self.__json_object(
            self.__request("GET", f"/instances/{instance_id}/status"), "status"
        )
        return InstanceStatus(
            status=InstanceState.from_wire(_opt_str(body, "status")),
            display_name=_opt_str(body, "display_name"),
            employment_template=EmploymentTemplate.from_wire(
                _opt_str(body, "employment_template")
            ),
            afternoon_cutoff=_opt_str(body, "afternoon_cutoff"),
        )

    def claim_token(self, instance_id: str) -> ClaimTokenResponse:
        body = self.__json_object(
            self.__request("POST", f"/instances/{instance_id}/claim-token", json={}),
            "claim-token",
        )
        try:
            return ClaimTokenResponse(
                instance_token=str(body["instance_token"]),
                display_name=str(body["display_name"]),
            )
        except KeyError as e:
            raise BackendProtocolException(f"claim-token: missing field {e}.") from e

    def get_attendance_month(self, year: int, month: int, token: str) -> AttendanceMonth:
        body = self.__json_object(
            self.__request(
                "GET",
                "/attendance",
                token=token,
                params={"year": str(year), "month": f"{month:02d}"},
            ),
            "attendance",
        )

        days: list[AttendanceDay] = []
        for item in body.get("days") or []:
            if not isinstance(item, dict) or "date" not in item:
                raise BackendProtocolException("attendance: malformed day entry.")
            days.append(
                AttendanceDay(
                    date=str(item["date"]),
                    arrival=_opt_str(item, "arrival_time"),
                    departure=_opt_str(item, "departure_time"),
                    planned_arrival=_opt_str(item, "planned_arrival_time"),
                    planned_departure=_opt_str(item, "planned_departure_time"),
                )
            )

        return AttendanceMonth(
            days=days, instance_display_name=_opt_str(body, "instance_display_name")
        )

    def put_attendance(self, body: AttendanceUpsert, token: str) -> None:
        # Both keys are always sent, None becomes an explicit null
        payload = {
            "date": body.date,
            "arrival_time": body.arrival,
            "departure_time": body.departure,
        }
        self.__request("PUT", "/attendance", token=token, json=payload)

    def close(self) -> None:
        self._session.close()

    def __str__(self) -> str:
        return f"HttpBackend[{self._root}]"
