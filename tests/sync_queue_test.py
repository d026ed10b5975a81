#!/usr/bin/env python3
"""
File: sync_queue_test.py
Author: Bastian Cerf
Date: 10/10/2025
Description:
    Unit test the offline attendance write queue.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import pytest
import threading

# Internal libraries
from .test_constants import *
from .classes_mocks import FakeBackend, FakeClock
from core.backend import *
from model.sync_queue import *

DAY_A = "2025-03-10"
DAY_B = "2025-03-11"
DAY_C = "2025-03-12"
APRIL_DAY = "2025-04-01"


@pytest.fixture
def queue(backend: FakeBackend) -> OfflineSyncQueue:
    return OfflineSyncQueue(backend, lambda: TEST_INSTANCE_TOKEN)


def queued_dates(queue: OfflineSyncQueue) -> list[str]:
    return [edit.date for edit in queue.pending()]


class SlowBackend(FakeBackend):
    """
    Backend whose writes take a fixed time on a fake clock.
    """

    def __init__(self, clock: FakeClock, duration: float):
        super().__init__()
        self._clock = clock
        self._duration = duration

    def put_attendance(self, body: AttendanceUpsert, token: str) -> None:
        self._clock.advance(self._duration)
        super().put_attendance(body, token)


########################################################################
#                            Direct writes                             #
########################################################################


def test_write_success(queue: OfflineSyncQueue, backend: FakeBackend):
    assert queue.attempt_write(DAY_A, "08:00", None) is WriteOutcome.WRITTEN
    assert queue.pending_count == 0
    assert backend.writes == [AttendanceUpsert(DAY_A, "08:00", None)]
    assert backend.calls[-1] == ("put", (backend.writes[0], TEST_INSTANCE_TOKEN))


@pytest.mark.parametrize(
    "error",
    [BackendNetworkException(), BackendRejectedException(500), BackendProtocolException()],
)
def test_write_failure_is_queued(
    queue: OfflineSyncQueue, backend: FakeBackend, error: Exception
):
    backend.fail_next("put", error)
    assert queue.attempt_write(DAY_A, "08:00", "16:00") is WriteOutcome.QUEUED
    assert queue.get(DAY_A) == PendingEdit(DAY_A, "08:00", "16:00")
    # A write failure doesn't change the connectivity
    assert queue.online


def test_offline_write_is_queued_without_call(
    queue: OfflineSyncQueue, backend: FakeBackend
):
    queue.mark_offline()
    assert queue.attempt_write(DAY_A, "08:00", None) is WriteOutcome.QUEUED
    assert backend.count("put") == 0
    assert queue.pending_count == 1


def test_locked_write_is_not_queued(queue: OfflineSyncQueue, backend: FakeBackend):
    backend.fail_next("put", BackendLockedException())
    assert queue.attempt_write(DAY_A, "08:00", None) is WriteOutcome.LOCKED
    assert queue.is_locked("2025-03")
    assert queue.locked_periods == {"2025-03"}
    assert queue.online
    assert queue.pending_count == 0

    # No call at all while locked
    assert queue.attempt_write(DAY_B, "08:00", None) is WriteOutcome.LOCKED
    assert backend.count("put") == 1

    # Other months are still writable
    assert queue.attempt_write(APRIL_DAY, "08:00", None) is WriteOutcome.WRITTEN
    assert backend.writes == [AttendanceUpsert(APRIL_DAY, "08:00", None)]

    queue.mark_locked("2025-03", False)
    assert queue.attempt_write(DAY_B, "08:00", None) is WriteOutcome.WRITTEN


def test_slow_write_is_queued():
    """
    A write answered after the call timeout counts as failed.
    """
    clock = FakeClock()
    queue = OfflineSyncQueue(
        SlowBackend(clock, 12.0), lambda: TEST_INSTANCE_TOKEN, call_timeout=10.0, clock=clock
    )
    assert queue.attempt_write(DAY_A, "08:00", None) is WriteOutcome.QUEUED
    assert queue.get(DAY_A) == PendingEdit(DAY_A, "08:00", None)

    fast = OfflineSyncQueue(
        SlowBackend(clock, 8.0), lambda: TEST_INSTANCE_TOKEN, call_timeout=10.0, clock=clock
    )
    assert fast.attempt_write(DAY_A, "08:00", None) is WriteOutcome.WRITTEN


def test_written_value_supersedes_queued_one(
    queue: OfflineSyncQueue, backend: FakeBackend
):
    queue.enqueue_or_update(DAY_A, "07:00", None)
    queue.enqueue_or_update(DAY_B, "07:30", None)

    assert queue.attempt_write(DAY_A, "08:00", None) is WriteOutcome.WRITTEN
    assert queued_dates(queue) == [DAY_B]


########################################################################
#                            Queue content                             #
########################################################################


def test_update_keeps_position(queue: OfflineSyncQueue):
    queue.enqueue_or_update(DAY_A, "08:00", None)
    queue.enqueue_or_update(DAY_B, "09:00", None)
    queue.enqueue_or_update(DAY_C, "10:00", None)

    queue.enqueue_or_update(DAY_A, "08:00", "16:00")

    assert queued_dates(queue) == [DAY_A, DAY_B, DAY_C]
    assert queue.get(DAY_A) == PendingEdit(DAY_A, "08:00", "16:00")
    assert queue.pending_count == 3

    queue.clear()
    assert queue.pending_count == 0


########################################################################
#                                Flush                                 #
########################################################################


def fill(queue: OfflineSyncQueue):
    for date in (DAY_A, DAY_B, DAY_C):
        queue.enqueue_or_update(date, "08:00", None)


def test_flush_in_order(queue: OfflineSyncQueue, backend: FakeBackend):
    fill(queue)
    assert queue.flush() == 3
    assert [w.date for w in backend.writes] == [DAY_A, DAY_B, DAY_C]
    assert queue.pending_count == 0
    # Nothing left to do
    assert queue.flush() == 0


def test_flush_stops_at_first_failure(queue: OfflineSyncQueue, backend: FakeBackend):
    fill(queue)
    backend.put_errors[DAY_B] = BackendNetworkException()

    assert queue.flush() == 1
    assert queued_dates(queue) == [DAY_B, DAY_C]
    # DAY_C has not been tried
    assert backend.count("put") == 2

    del backend.put_errors[DAY_B]
    assert queue.flush() == 2
    assert queue.pending_count == 0


def test_flush_offline_is_noop(queue: OfflineSyncQueue, backend: FakeBackend):
    fill(queue)
    queue.mark_offline()
    assert queue.flush() == 0
    assert backend.count("put") == 0

    queue.mark_online()
    assert queue.flush() == 3


def test_flush_parks_locked_period(queue: OfflineSyncQueue, backend: FakeBackend):
    fill(queue)
    backend.put_errors[DAY_B] = BackendLockedException()

    assert queue.flush() == 1
    assert queue.is_locked("2025-03")
    assert queued_dates(queue) == [DAY_B, DAY_C]

    # Not retried while locked
    assert queue.flush() == 0
    assert backend.count("put") == 2


########################################################################
#                          Concurrent flushes                          #
########################################################################


class BlockingBackend(FakeBackend):
    """
    Backend whose writes wait for a release.
    """

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def put_attendance(self, body: AttendanceUpsert, token: str) -> None:
        self.entered.set()
        assert self.release.wait(5.0)
        super().put_attendance(body, token)


def test_single_flight_flush():
    """
    A flush requested while another one runs returns immediately.
    """
    backend = BlockingBackend()
    queue = OfflineSyncQueue(backend, lambda: TEST_INSTANCE_TOKEN)
    fill(queue)

    results: list[int] = []
    worker = threading.Thread(target=lambda: results.append(queue.flush()))
    worker.start()
    assert backend.entered.wait(5.0)

    assert queue.flushing
    assert queue.flush() == 0

    backend.release.set()
    worker.join(5.0)
    assert results == [3]
    assert not queue.flushing
    assert backend.count("put") == 3


def test_edit_during_flush_is_kept():
    """
    An edit replaced while its previous value is being written stays
    queued and is written after it.
    """
    backend = BlockingBackend()
    queue = OfflineSyncQueue(backend, lambda: TEST_INSTANCE_TOKEN)
    queue.enqueue_or_update(DAY_A, "08:00", None)

    worker = threading.Thread(target=queue.flush)
    worker.start()
    assert backend.entered.wait(5.0)

    queue.enqueue_or_update(DAY_A, "08:00", "16:00")
    backend.release.set()
    worker.join(5.0)

    # The newer value has not been dropped with the older one
    assert backend.writes == [
        AttendanceUpsert(DAY_A, "08:00", None),
        AttendanceUpsert(DAY_A, "08:00", "16:00"),
    ]
    assert queue.pending_count == 0


def test_flush_skips_locked_period(queue: OfflineSyncQueue, backend: FakeBackend):
    """
    A locked month keeps its edits queued while the next month syncs.
    """
    queue.enqueue_or_update(DAY_A, "08:00", None)
    queue.enqueue_or_update(APRIL_DAY, "09:00", None)
    queue.enqueue_or_update(DAY_B, "08:30", None)
    backend.put_errors[DAY_A] = BackendLockedException()

    assert queue.flush() == 1
    assert backend.writes == [AttendanceUpsert(APRIL_DAY, "09:00", None)]
    assert queued_dates(queue) == [DAY_A, DAY_B]
    # DAY_B belongs to the locked month, never sent
    assert [args[0].date for name, args in backend.calls if name == "put"] == [
        DAY_A,
        APRIL_DAY,
    ]

    # Unlocked: the parked edits are replayed in order
    del backend.put_errors[DAY_A]
    queue.mark_locked("2025-03", False)
    assert queue.flush() == 2
    assert [w.date for w in backend.writes] == [APRIL_DAY, DAY_A, DAY_B]


def test_offline_edits_coalesce(queue: OfflineSyncQueue, backend: FakeBackend):
    """
    Two offline edits of a date end up as a single write of the latest
    value.
    """
    queue.mark_offline()
    assert queue.attempt_write(DAY_A, "08:00", None) is WriteOutcome.QUEUED
    assert queue.attempt_write(DAY_A, "08:00", "16:30") is WriteOutcome.QUEUED
    assert queue.pending() == [PendingEdit(DAY_A, "08:00", "16:30")]

    queue.mark_online()
    assert queue.flush() == 1
    assert backend.count("put") == 1
    assert backend.writes == [AttendanceUpsert(DAY_A, "08:00", "16:30")]
