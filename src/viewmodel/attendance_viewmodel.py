#!/usr/bin/env python3
"""
File: attendance_viewmodel.py
Author: Bastian Cerf
Date: 13/10/2025
Description:
    Month attendance session of an authorized instance.

    The viewmodel loads a month of attendance from the backend, computes
    the display metrics of each day and the month totals, and routes the
    user edits to the backend through the offline queue.

    Edits are optimistic: the local rows are updated immediately and the
    write happens asynchronously. Typed values are debounced per field,
    a value is committed only once the field has been left untouched for
    the debounce delay. Writes are sent one at a time, in commit order.

    Each change publishes a new immutable `MonthSnapshot`.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import calendar
import datetime as dt
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

# Internal libraries
from common.debouncer import Debouncer
from common.live_data import LiveData
from core.attendance import *
from model import *

__all__ = [
    "AttendanceViewModel",
    "MonthSnapshot",
    "DayView",
    "ARRIVAL",
    "DEPARTURE",
    "DEFAULT_EDIT_DEBOUNCE",
]

logger = logging.getLogger(__name__)

# Quiet delay before a typed value is committed, in seconds
DEFAULT_EDIT_DEBOUNCE = 0.6

# Editable fields
ARRIVAL = "arrival"
DEPARTURE = "departure"
_FIELDS = (ARRIVAL, DEPARTURE)


@dataclass(frozen=True)
class DayView:
    """
    A day of the month as displayed.

    Attributes:
        day (AttendanceDay): Current (optimistic) record.
        computed (DayComputed): Day metrics.
        arrival_draft (Optional[str]): Typed arrival not committed yet.
        departure_draft (Optional[str]): Typed departure not committed
            yet.
        unsynced (bool): `True` if an edit of this day waits in the
            offline queue.
    """

    day: AttendanceDay
    computed: DayComputed
    arrival_draft: Optional[str] = field(default=None)
    departure_draft: Optional[str] = field(default=None)
    unsynced: bool = field(default=False)


@dataclass(frozen=True)
class MonthSnapshot:
    """
    Immutable view of the month session.
    """

    month: str
    days: tuple[DayView, ...]
    stats: MonthStats
    working_fund_hours: int
    template: EmploymentTemplate
    cutoff: str
    pending_count: int
    online: bool
    locked: bool
    loading: bool
    display_name: Optional[str]


def _month_key(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


class AttendanceViewModel:
    """
    Month session. `run()` must be called at a fixed interval by the
    owner thread, which is the only one touching the session state.
    """

    def __init__(
        self,
        scheduler: SessionScheduler,
        token: str,
        template: EmploymentTemplate,
        afternoon_cutoff: Optional[str] = None,
        display_name: Optional[str] = None,
        default_cutoff: str = DEFAULT_CUTOFF,
        edit_debounce: float = DEFAULT_EDIT_DEBOUNCE,
        holidays: HolidayCalendar = CZECH_CALENDAR,
        now: Callable[[], dt.datetime] = dt.datetime.now,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            scheduler (SessionScheduler): Runs the backend calls.
            token (str): Instance access token.
            template (EmploymentTemplate): Employment template.
            afternoon_cutoff (Optional[str]): "HH:MM" afternoon cutoff,
                `default_cutoff` if missing or malformed.
            display_name (Optional[str]): Instance display name.
            default_cutoff (str): Fallback "HH:MM" afternoon cutoff.
            edit_debounce (float): Per-field debounce delay, in seconds.
            holidays (HolidayCalendar): Public holidays calendar.
            now (Callable[[], dt.datetime]): Wall clock, for "today" and
                the punch action.
            clock (Callable[[], float]): Monotonic time source.
        """
        self._scheduler = scheduler
        self._token = token
        self._template = template
        self._cutoff_minutes = parse_cutoff_to_minutes(afternoon_cutoff, default_cutoff)
        self._display_name = display_name
        self._holidays = holidays
        self._now = now

        self._queue = OfflineSyncQueue(
            scheduler.backend,
            lambda: self._token,
            call_timeout=scheduler.call_timeout,
        )
        self._debouncer = Debouncer[str](edit_debounce, clock=clock)

        today = now().date()
        self._year, self._month = today.year, today.month
        self._rows: OrderedDict[str, AttendanceDay] = OrderedDict()
        self._drafts: dict[tuple[str, str], str] = {}

        self._month_handle: Optional[int] = None
        self._write_handle: Optional[int] = None
        # Commits waiting for the write slot, one per date
        self._write_backlog: OrderedDict[str, tuple[Optional[str], Optional[str]]] = (
            OrderedDict()
        )

        self._snapshot = LiveData[MonthSnapshot](self.__make_snapshot())

    ### Properties ###

    @property
    def queue(self) -> OfflineSyncQueue:
        return self._queue

    @property
    def month(self) -> str:
        return _month_key(self._year, self._month)

    @property
    def locked(self) -> bool:
        """`True` if the displayed month is locked."""
        return self._queue.is_locked(self.month)

    @property
    def online(self) -> bool:
        return self._queue.online

    @property
    def pending_count(self) -> int:
        """Number of edits waiting to be synced."""
        return self._queue.pending_count

    @property
    def snapshot(self) -> LiveData[MonthSnapshot]:
        """
        Returns:
            LiveData[MonthSnapshot]: Observable month view.
        """
        return self._snapshot

    @staticmethod
    def is_field_valid(raw: str) -> bool:
        """
        Validity predicate of a typed arrival or departure.
        """
        return is_valid_time_or_empty(raw)

    ### Month loading ###

    def load_month(self):
        """
        (Re)load the current month from the backend.
        """
        if self._month_handle is not None:
            self._scheduler.drop(self._month_handle)

        self._month_handle = self._scheduler.start_month_task(
            self._year, self._month, self._token
        )
        self.__publish()

    def __shift_month(self, delta: int):
        # Don't lose what has been typed in the month being left
        for key, raw in self._debouncer.flush():
            date, field_name = key  # type: ignore[misc]
            self.commit_field(date, field_name, raw)

        index = self._year * 12 + (self._month - 1) + delta
        self._year, self._month = divmod(index, 12)
        self._month += 1
        self._rows.clear()
        self._drafts.clear()
        logger.info(f"Month changed to {self.month}.")
        self.load_month()

    def next_month(self):
        self.__shift_month(1)

    def previous_month(self):
        self.__shift_month(-1)

    def __on_month_loaded(self, msg: MonthLoaded):
        days = {day.date: day for day in msg.data.days}
        self._rows.clear()
        self._drafts.clear()
        # One row per calendar day, missing days are empty
        for number in range(1, calendar.monthrange(msg.year, msg.month)[1] + 1):
            date = dt.date(msg.year, msg.month, number).isoformat()
            self._rows[date] = days.get(date, AttendanceDay(date))

        if msg.data.instance_display_name:
            self._display_name = msg.data.instance_display_name

        self._queue.mark_locked(self.month, False)
        self._queue.mark_online()
        logger.info(f"Month {self.month} loaded, {len(msg.data.days)} day(s) filled.")

        # Back online: replay what has been queued meanwhile
        self.retry_sync()

    def __on_month_failed(self, msg: ModelError):
        self._rows.clear()
        self._drafts.clear()
        if msg.locked:
            # Locked is not offline: the backend answered
            self._queue.mark_locked(self.month, True)
            self._queue.mark_online()
        else:
            self._queue.mark_offline()
            logger.warning(f"Month {self.month} unavailable: {msg.message}")

    ### Edits ###

    def edit_field(self, date: str, field_name: str, raw: str):
        """
        Record a keystroke-level change of a field. The value is
        committed once the field has been left untouched for the
        debounce delay.
        """
        if field_name not in _FIELDS:
            raise ValueError(f"Unknown field '{field_name}'.")

        self._drafts[(date, field_name)] = raw
        self._debouncer.schedule((date, field_name), raw)
        self.__publish()

    def commit_field(self, date: str, field_name: str, raw: str) -> bool:
        """
        Validate a field value, apply it to the local row and send it.

        Returns:
            bool: `True` if the value has been accepted.
        """
        if field_name not in _FIELDS:
            raise ValueError(f"Unknown field '{field_name}'.")

        if self._queue.is_locked(period_of(date)):
            logger.info(f"Edit of {date} ignored, the month is locked.")
            return False

        try:
            value = validate_time(raw) or None
        except TimeValidationError as e:
            # Invalid text stays as a draft, nothing is sent
            logger.debug(f"Edit of {date} {field_name} rejected: {e}")
            self.__publish()
            return False

        row = self._rows.get(date)
        if row is None:
            logger.debug(f"Edit of {date} ignored, not in the loaded month.")
            return False

        if field_name == ARRIVAL:
            row = replace(row, arrival=value)
        else:
            row = replace(row, departure=value)
        self._rows[date] = row
        self._drafts.pop((date, field_name), None)

        self.__enqueue_write(date, row.arrival, row.departure)
        self.__publish()
        return True

    def punch_now(self) -> bool:
        """
        Fill today's arrival with the current time, or the departure if
        the arrival is already set.

        Returns:
            bool: `True` if a time has been recorded.
        """
        now = self._now()
        today = now.date().isoformat()
        if self._queue.is_locked(period_of(today)):
            return False

        row = self._rows.get(today)
        if row is None:
            return False

        hhmm = now.strftime("%H:%M")
        if not row.arrival:
            return self.commit_field(today, ARRIVAL, hhmm)
        if not row.departure:
            return self.commit_field(today, DEPARTURE, hhmm)
        return False

    def retry_sync(self):
        """
        Replay the offline queue if possible.
        """
        if self._queue.pending_count and self._write_handle is None:
            self._write_handle = self._scheduler.start_flush_task(self._queue)

    def __enqueue_write(
        self, date: str, arrival: Optional[str], departure: Optional[str]
    ):
        # A newer commit of the same date replaces the waiting one
        self._write_backlog[date] = (arrival, departure)

    def __start_next_write(self):
        if self._write_handle is not None or not self._write_backlog:
            return

        date, (arrival, departure) = self._write_backlog.popitem(last=False)
        self._write_handle = self._scheduler.start_write_task(
            self._queue, date, arrival, departure
        )

    ### Running ###

    def run(self):
        """
        Fire the due debounce timers, collect the finished tasks and
        publish the changes. Must be called at a fixed interval.
        """
        for key, raw in self._debouncer.poll():
            date, field_name = key  # type: ignore[misc]
            self.commit_field(date, field_name, raw)

        if self._month_handle is not None:
            msg = self._scheduler.get_result(self._month_handle)
            if msg is not None:
                self._month_handle = None
                if isinstance(msg, MonthLoaded):
                    if (msg.year, msg.month) == (self._year, self._month):
                        self.__on_month_loaded(msg)
                elif isinstance(msg, ModelError):
                    self.__on_month_failed(msg)

        if self._write_handle is not None:
            msg = self._scheduler.get_result(self._write_handle)
            if msg is not None:
                self._write_handle = None
                if isinstance(msg, WriteDone):
                    logger.debug(
                        f"Write {msg.date or 'flush'}: {msg.outcome}, "
                        f"{msg.pending} pending."
                    )
                elif isinstance(msg, ModelError):
                    logger.warning(f"Write task failed: {msg.message}")

        self.__start_next_write()
        self.__publish()

    def close(self):
        """
        Drop the running tasks. Queued edits are discarded.
        """
        for handle in (self._month_handle, self._write_handle):
            if handle is not None:
                self._scheduler.drop(handle)
        self._month_handle = self._write_handle = None
        if self._queue.pending_count:
            logger.warning(f"{self._queue.pending_count} unsynced edit(s) discarded.")

    ### Snapshot ###

    def __make_snapshot(self) -> MonthSnapshot:
        pending_dates = {edit.date for edit in self._queue.pending()}
        views: list[DayView] = []
        for date, day in self._rows.items():
            views.append(
                DayView(
                    day=day,
                    computed=compute_day(
                        day, self._template, self._cutoff_minutes, self._holidays
                    ),
                    arrival_draft=self._drafts.get((date, ARRIVAL)),
                    departure_draft=self._drafts.get((date, DEPARTURE)),
                    unsynced=date in pending_dates or date in self._write_backlog,
                )
            )

        return MonthSnapshot(
            month=self.month,
            days=tuple(views),
            stats=sum_computed((v.computed for v in views), self._template),
            working_fund_hours=self._holidays.working_fund_hours(self._year, self._month),
            template=self._template,
            cutoff=minutes_to_hhmm(self._cutoff_minutes),
            pending_count=self._queue.pending_count,
            online=self._queue.online,
            locked=self.locked,
            loading=self._month_handle is not None,
            display_name=self._display_name,
        )

    def __publish(self):
        # Observers are only notified when the snapshot differs
        self._snapshot.value = self.__make_snapshot()
