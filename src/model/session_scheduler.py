#!/usr/bin/env python3
"""
File: session_scheduler.py
Author: Bastian Cerf
Date: 11/10/2025
Description:
    Provides an asynchronous way to talk to the attendance backend.
    The scheduler executes network tasks on a thread pool and lets the
    viewmodels poll their results.

    The viewmodels own all the session state and only touch it from
    their own thread. Network calls are the only suspension points: a
    task is started, then its result is polled on next runs until
    available.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging
import time
from concurrent.futures import ThreadPoolExecutor, Future
from dataclasses import dataclass, field
from threading import Event
from types import TracebackType
from typing import Any, Callable, Optional, Type

# Internal imports
from .data import *
from .sync_queue import OfflineSyncQueue
from core.backend import *

logger = logging.getLogger(__name__)

# Maximal number of asynchronous tasks that can run simultaneously
MAX_TASK_WORKERS = 4

# Overall duration allowed for a network call, in seconds
DEFAULT_CALL_TIMEOUT = 20.0


class CancellationToken:
    """
    Cancellation flag shared between a task and its owner.
    """

    def __init__(self):
        self._event = Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class _Task:
    future: Future[IModelMessage]
    token: CancellationToken
    # None for a task that is only available once done
    deadline: Optional[float]
    name: str = field(default="task")


class SessionScheduler:
    """
    The scheduler holds a thread pool executor and runs the backend
    operations (registration, status polling, token claim, month read,
    attendance writes). Task results are retrieved via the message
    containers of `model.data`. This class is not thread safe: a single
    thread must post tasks and read results.
    """

    def __init__(
        self,
        backend: AttendanceBackend,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            backend (AttendanceBackend): Backend collaborator.
            call_timeout (float): Time after which a running task is
                reported as a network failure, in seconds.
            clock (Callable[[], float]): Monotonic time source.
        """
        self._backend = backend
        self._call_timeout = call_timeout
        self._clock = clock

        self._pool = ThreadPoolExecutor(
            max_workers=MAX_TASK_WORKERS, thread_name_prefix="Task-"
        )

        self._pending_tasks: dict[int, _Task] = {}
        self._task_handle = -1  # Attribute a unique handle per task

    @property
    def backend(self) -> AttendanceBackend:
        return self._backend

    @property
    def call_timeout(self) -> float:
        return self._call_timeout

    def __submit(
        self, name: str, func: Callable[[], IModelMessage], bounded: bool = True
    ) -> int:
        """
        Submit a task and return its unique handle.

        A bounded task is reported as a network failure once the call
        timeout is elapsed. An unbounded one stays pending until done.
        """
        token = CancellationToken()

        def guarded() -> IModelMessage:
            # Dropped before it even started: don't hit the network
            if token.cancelled:
                return ModelError(ErrorKind.INTERNAL, f"{name} cancelled.")
            return _wrap_errors(func)

        self._task_handle += 1
        self._pending_tasks[self._task_handle] = _Task(
            future=self._pool.submit(guarded),
            token=token,
            deadline=self._clock() + self._call_timeout if bounded else None,
            name=name,
        )
        return self._task_handle

    ### Tasks ###

    def start_register_task(
        self,
        client_type: str,
        device_fingerprint: str,
        device_info: Optional[dict[str, Any]] = None,
        display_name: Optional[str] = None,
    ) -> int:
        """
        Register the client instance. Posts an `InstanceRegistered` on
        success or a `ModelError` on failure.
        """
        return self.__submit(
            "register",
            lambda: InstanceRegistered(
                self._backend.register_instance(
                    client_type, device_fingerprint, device_info, display_name
                )
            ),
        )

    def start_status_task(self, instance_id: str) -> int:
        """
        Read the instance status. Posts an `InstanceStatusRead`.
        """
        return self.__submit(
            "status",
            lambda: InstanceStatusRead(self._backend.get_status(instance_id)),
        )

    def start_claim_task(self, instance_id: str) -> int:
        """
        Claim the instance access token. Posts a `TokenClaimed`.
        """
        return self.__submit(
            "claim-token",
            lambda: TokenClaimed(self._backend.claim_token(instance_id)),
        )

    def start_month_task(self, year: int, month: int, token: str) -> int:
        """
        Read a month of attendance. Posts a `MonthLoaded`.
        """
        return self.__submit(
            "month",
            lambda: MonthLoaded(
                year, month, self._backend.get_attendance_month(year, month, token)
            ),
        )

    def start_write_task(
        self,
        queue: OfflineSyncQueue,
        date: str,
        arrival: Optional[str],
        departure: Optional[str],
    ) -> int:
        """
        Write an edit through the offline queue, then try to flush the
        queue. Posts a `WriteDone`, failures are absorbed by the queue.

        The task is unbounded: the queue limits each single write, and a
        write still running must keep its slot so that no newer write of
        the same date can overtake it.
        """

        def write() -> IModelMessage:
            outcome = queue.attempt_write(date, arrival, departure)
            queue.flush()
            return WriteDone(date, outcome.name, queue.pending_count)

        return self.__submit("write", write, bounded=False)

    def start_flush_task(self, queue: OfflineSyncQueue) -> int:
        """
        Replay the offline queue. Posts a `WriteDone`. Unbounded, like
        the write task.
        """

        def flush() -> IModelMessage:
            synced = queue.flush()
            return WriteDone(None, f"FLUSHED_{synced}", queue.pending_count)

        return self.__submit("flush", flush, bounded=False)

    ### Results ###

    def available(self, handle: int) -> bool:
        """
        Check if the task identified by the given handle has finished or
        timed out.

        `False` is returned whether the task is pending or doesn't exist.
        """
        task = self._pending_tasks.get(handle)
        if task is None:
            return False
        if task.future.done():
            return True
        return task.deadline is not None and self._clock() > task.deadline

    def get_result(self, handle: int) -> Optional[IModelMessage]:
        """
        Get a task result and forget the task.

        Args:
            handle (int): Task handle.

        Returns:
            Optional[IModelMessage]: Task result, `None` if unavailable.
        """
        if not self.available(handle):
            return None

        task = self._pending_tasks.pop(handle)
        if not task.future.done():
            # Still running past the call timeout, its result is ignored
            task.token.cancel()
            logger.warning(f"Task '{task.name}' exceeded {self._call_timeout}s.")
            return ModelError(ErrorKind.NETWORK, f"{task.name} timed out.")

        try:
            return task.future.result()
        except Exception as e:
            logger.error(
                f"Task '{task.name}' didn't finish properly.", exc_info=True
            )
            return ModelError(ErrorKind.INTERNAL, f"Task raised {e.__class__.__name__}.")

    def drop(self, handle: int):
        """
        Drop a task whose result is no longer wanted. It is safe to call
        this method with any handle.
        """
        task = self._pending_tasks.pop(handle, None)
        if task:
            task.token.cancel()
            task.future.cancel()

    def close(self) -> None:
        """
        Close the scheduler and the backend. Waits for running tasks.
        """
        for handle in list(self._pending_tasks):
            self.drop(handle)
        self._pool.shutdown(wait=True, cancel_futures=True)
        self._backend.close()

    def __enter__(self) -> "SessionScheduler":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> Optional[bool]:
        self.close()


def _wrap_errors(func: Callable[[], IModelMessage]) -> IModelMessage:
    """
    Run a task body and convert backend exceptions to `ModelError`.
    """
    try:
        return func()
    except BackendLockedException as e:
        return ModelError(ErrorKind.LOCKED, str(e), e.code)
    except BackendRejectedException as e:
        return ModelError(ErrorKind.REJECTED, str(e), e.code)
    except BackendProtocolException as e:
        return ModelError(ErrorKind.REJECTED, str(e))
    except BackendNetworkException as e:
        return ModelError(ErrorKind.NETWORK, str(e))
