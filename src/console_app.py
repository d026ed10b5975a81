#!/usr/bin/env python3
"""
File: console_app.py
Author: Bastian Cerf
Date: 14/10/2025
Description:
    Headless frontend. Drives the viewmodels from a single session
    thread at a fixed tick and reports their changes in the logs.

    The month session is opened as soon as the instance is authorized
    and closed if the authorization is lost.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging
import threading
from typing import Callable, Optional

# Internal libraries
from core.attendance import format_hours
from viewmodel.attendance_viewmodel import AttendanceViewModel, MonthSnapshot
from viewmodel.lifecycle_viewmodel import InstanceLifecycleViewModel, InstanceRecord

logger = logging.getLogger(__name__)

SessionFactory = Callable[[InstanceRecord], AttendanceViewModel]


class DagmarConsoleApp:
    """
    Application handle supporting a blocking `run()` and a `stop()` that
    can be called from any thread.
    """

    def __init__(
        self,
        lifecycle: InstanceLifecycleViewModel,
        session_factory: SessionFactory,
        tick: float = 0.1,
    ):
        """
        Args:
            lifecycle (InstanceLifecycleViewModel): Instance lifecycle.
            session_factory (SessionFactory): Creates the month session
                of an authorized instance.
            tick (float): Session loop period in seconds.
        """
        self._lifecycle = lifecycle
        self._session_factory = session_factory
        self._tick = tick
        self._session: Optional[AttendanceViewModel] = None
        self._stop_event = threading.Event()

        lifecycle.notice.observe(lambda notice: logger.warning(f"Notice: {notice}"))
        lifecycle.current_state.observe(
            lambda state: logger.debug(f"Lifecycle state: {state}")
        )

    @property
    def session(self) -> Optional[AttendanceViewModel]:
        return self._session

    def step(self):
        """
        Run one iteration of the session loop.
        """
        self._lifecycle.run()
        record = self._lifecycle.record.value

        if record.authorized and self._session is None:
            logger.info(f"Instance '{record.display_name}' authorized, opening the month.")
            self._session = self._session_factory(record)
            self._session.snapshot.observe(self.__report)
            self._session.load_month()
        elif not record.authorized and self._session is not None:
            logger.warning("Authorization lost, closing the month session.")
            self._session.close()
            self._session = None

        if self._session is not None:
            self._session.run()

    def __report(self, snapshot: MonthSnapshot):
        if snapshot.loading:
            return
        stats = snapshot.stats
        logger.info(
            f"{snapshot.month}: worked {format_hours(stats.total_mins)} h of "
            f"{snapshot.working_fund_hours} h, {snapshot.pending_count} unsynced, "
            f"{'online' if snapshot.online else 'offline'}"
            f"{', locked' if snapshot.locked else ''}."
        )

    def run(self):
        """
        Run the session loop until `stop()` is called.
        """
        logger.info("Session loop started.")
        try:
            while not self._stop_event.wait(self._tick):
                self.step()
        finally:
            if self._session is not None:
                self._session.close()
            self._lifecycle.close()
            self._lifecycle.scheduler.close()
            logger.info("Session loop stopped.")

    def stop(self):
        self._stop_event.set()

    def __str__(self) -> str:
        return "DagmarConsoleApp"
