#!/usr/bin/env python3
"""
File: sync_queue.py
Author: Bastian Cerf
Date: 11/10/2025
Description:
    Offline write-queue for attendance edits.

    Edits that cannot reach the backend are kept in memory, one per
    date, and replayed in their original order once the connection is
    back. Re-editing a date replaces the queued value in place, the
    latest value wins and the queue position is kept.

    The queue is ephemeral: it is never written to storage and is lost
    when the process exits.

    Connectivity is tracked from reads: a failed read marks the
    connection offline, a successful one marks it online. Locks are
    tracked per period ("YYYY-MM"): a locked period refuses its edits
    without touching the connectivity flag, and its queued edits are
    parked while the other periods keep syncing.

    A write taking longer than the call timeout is handled like any
    other network failure and its edit is queued.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum, auto
from threading import Lock, RLock
from typing import Callable, Optional

# Internal libraries
from core.backend import (
    AttendanceBackend,
    AttendanceUpsert,
    BackendException,
    BackendLockedException,
    BackendNetworkException,
)

logger = logging.getLogger(__name__)


def period_of(date: str) -> str:
    """
    Returns:
        str: The "YYYY-MM" period of an ISO date.
    """
    return date[:7]


@dataclass(frozen=True)
class PendingEdit:
    """
    Latest desired value of a date, waiting to be synced.
    """

    date: str
    arrival: Optional[str]
    departure: Optional[str]

    def to_upsert(self) -> AttendanceUpsert:
        return AttendanceUpsert(self.date, self.arrival, self.departure)


class WriteOutcome(Enum):
    """Result of `OfflineSyncQueue.attempt_write()`."""

    # Stored by the backend
    WRITTEN = auto()
    # Kept in the queue for a later flush
    QUEUED = auto()
    # Refused, the period is locked
    LOCKED = auto()


class OfflineSyncQueue:
    """
    In-memory queue of attendance writes.

    The queue is safe to use from the scheduler worker threads. A
    single flush runs at a time, a concurrent `flush()` call returns
    immediately.
    """

    def __init__(
        self,
        backend: AttendanceBackend,
        token_provider: Callable[[], str],
        call_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            backend (AttendanceBackend): Backend receiving the writes.
            token_provider (Callable[[], str]): Returns the access token
                to use for each write.
            call_timeout (Optional[float]): Duration allowed for a single
                write, in seconds. `None` for no limit.
            clock (Callable[[], float]): Monotonic time source.
        """
        self._backend = backend
        self._token_provider = token_provider
        self._call_timeout = call_timeout
        self._clock = clock

        self._edits: OrderedDict[str, PendingEdit] = OrderedDict()
        self._lock = RLock()  # Protects the edits and the flags
        self._flush_mutex = Lock()  # Held during a flush

        self._online = True
        self._locked_periods: set[str] = set()

    ### Connectivity ###

    @property
    def online(self) -> bool:
        return self._online

    def mark_online(self):
        """Called after a successful read."""
        if not self._online:
            logger.info("Backend is reachable again.")
        self._online = True

    def mark_offline(self):
        """Called after a failed read."""
        if self._online:
            logger.warning("Backend is unreachable, edits will be queued.")
        self._online = False

    ### Locks ###

    def is_locked(self, period: str) -> bool:
        """
        Args:
            period (str): "YYYY-MM" period.
        """
        with self._lock:
            return period in self._locked_periods

    @property
    def locked_periods(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._locked_periods)

    def mark_locked(self, period: str, locked: bool):
        """
        Set the administrative lock state of a period.
        """
        with self._lock:
            if locked == (period in self._locked_periods):
                return
            if locked:
                self._locked_periods.add(period)
            else:
                self._locked_periods.discard(period)
        logger.info(f"Period {period} {'locked' if locked else 'unlocked'}.")

    ### Queue content ###

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._edits)

    def pending(self) -> list[PendingEdit]:
        """
        Returns:
            list[PendingEdit]: Snapshot of the queue, front first.
        """
        with self._lock:
            return list(self._edits.values())

    def get(self, date: str) -> Optional[PendingEdit]:
        with self._lock:
            return self._edits.get(date)

    def enqueue_or_update(
        self, date: str, arrival: Optional[str], departure: Optional[str]
    ) -> PendingEdit:
        """
        Queue an edit. An existing edit of the same date is replaced in
        place and keeps its position.
        """
        edit = PendingEdit(date, arrival, departure)
        with self._lock:
            # Assigning an existing key keeps its position in the order
            self._edits[date] = edit
            logger.debug(f"Queued edit for {date}, {len(self._edits)} pending.")
        return edit

    def clear(self):
        with self._lock:
            self._edits.clear()

    def __discard_if_unchanged(self, edit: PendingEdit):
        """
        Remove a synced edit, unless it has been replaced by a newer one
        meanwhile.
        """
        with self._lock:
            if self._edits.get(edit.date) is edit:
                del self._edits[edit.date]

    def __next_edit(self) -> Optional[PendingEdit]:
        """
        Oldest edit whose period is not locked.
        """
        with self._lock:
            for edit in self._edits.values():
                if period_of(edit.date) not in self._locked_periods:
                    return edit
        return None

    ### Writes ###

    def __put(self, body: AttendanceUpsert):
        """
        Send a write to the backend.

        Raises:
            BackendException: The write failed or exceeded the call
                timeout.
        """
        start = self._clock()
        self._backend.put_attendance(body, self._token_provider())

        elapsed = self._clock() - start
        if self._call_timeout is not None and elapsed > self._call_timeout:
            raise BackendNetworkException(
                f"Write for {body.date} took {elapsed:.1f}s, "
                f"more than {self._call_timeout}s."
            )

    def attempt_write(
        self, date: str, arrival: Optional[str], departure: Optional[str]
    ) -> WriteOutcome:
        """
        Write an edit to the backend, falling back to the queue on any
        failure but a lock.

        Returns:
            WriteOutcome: What happened to the edit.
        """
        period = period_of(date)
        if self.is_locked(period):
            logger.info(f"Edit for {date} refused, period {period} is locked.")
            return WriteOutcome.LOCKED

        if not self._online:
            self.enqueue_or_update(date, arrival, departure)
            return WriteOutcome.QUEUED

        try:
            self.__put(AttendanceUpsert(date, arrival, departure))
        except BackendLockedException:
            self.mark_locked(period, True)
            return WriteOutcome.LOCKED
        except BackendException as e:
            logger.warning(f"Write for {date} failed, queued: {e}")
            self.enqueue_or_update(date, arrival, departure)
            return WriteOutcome.QUEUED

        # The written value supersedes any older queued value of the date
        with self._lock:
            stale = self._edits.pop(date, None)
        if stale is not None:
            logger.debug(f"Dropped superseded queued edit for {date}.")
        return WriteOutcome.WRITTEN

    def flush(self) -> int:
        """
        Replay the queued edits in order while online.

        Edits of a locked period are skipped and stay queued. Any other
        failure stops the flush and leaves the failed edit and the
        following ones queued, in order. Only one flush runs at a time,
        a concurrent call is a no-op.

        Returns:
            int: Number of edits synced by this call.
        """
        if not self._flush_mutex.acquire(blocking=False):
            logger.debug("Flush already in progress.")
            return 0

        synced = 0
        try:
            while self._online:
                edit = self.__next_edit()
                if edit is None:
                    break

                try:
                    self.__put(edit.to_upsert())
                except BackendLockedException:
                    # Park the period, the others keep syncing
                    self.mark_locked(period_of(edit.date), True)
                    continue
                except BackendException as e:
                    logger.warning(f"Flush stopped on {edit.date}: {e}")
                    break

                self.__discard_if_unchanged(edit)
                synced += 1

        finally:
            self._flush_mutex.release()

        if synced:
            logger.info(f"Synced {synced} queued edit(s), {self.pending_count} left.")
        return synced

    @property
    def flushing(self) -> bool:
        return self._flush_mutex.locked()
