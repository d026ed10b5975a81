#!/usr/bin/env python3
"""
File: debouncer.py
Author: Bastian Cerf
Date: 15/10/2025
Description:
    Restartable timers keyed by identity. Each `schedule()` call on a
    key cancels the pending timer of that key and starts a new one.
    A value is released only once the delay has elapsed without any
    further call for the same key.

    The debouncer does not own any thread. It is polled by its owner,
    which keeps every callback on the owner's thread.

    ```
    debouncer = Debouncer(delay=0.6)
    debouncer.schedule(("2025-03-10", "arrival"), "8")
    debouncer.schedule(("2025-03-10", "arrival"), "08:15")
    ...
    for key, value in debouncer.poll():
        commit(key, value)  # only "08:15" is released
    ```

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import time
from typing import Callable, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")


class Debouncer(Generic[V]):
    """
    Collection of restartable timers, one per key.
    """

    def __init__(self, delay: float, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            delay (float): Quiet period in seconds before a value is
                released.
            clock (Callable[[], float]): Monotonic time source, in
                seconds. Injectable for tests.
        """
        if delay < 0:
            raise ValueError(f"Debounce delay must be positive, got {delay}.")

        self._delay = delay
        self._clock = clock
        # Key -> (deadline, value)
        self._timers: dict[Hashable, tuple[float, V]] = {}

    @property
    def delay(self) -> float:
        return self._delay

    def schedule(self, key: Hashable, value: V):
        """
        (Re)start the timer of the given key with a new value.
        """
        # Pop first so a restarted key moves to the end of the order
        self._timers.pop(key, None)
        self._timers[key] = (self._clock() + self._delay, value)

    def cancel(self, key: Hashable) -> bool:
        """
        Cancel the timer of the given key.

        Returns:
            bool: `True` if a timer was pending.
        """
        return self._timers.pop(key, None) is not None

    def pending(self, key: Hashable) -> Optional[V]:
        """
        Returns:
            Optional[V]: The value waiting on the key, if any.
        """
        entry = self._timers.get(key)
        return entry[1] if entry else None

    def __len__(self) -> int:
        return len(self._timers)

    def poll(self) -> list[tuple[Hashable, V]]:
        """
        Release the values whose delay has elapsed.

        Returns:
            list[tuple[Hashable, V]]: Released `(key, value)` pairs in
                scheduling order.
        """
        now = self._clock()
        due = [key for key, (deadline, _) in self._timers.items() if deadline <= now]
        return [(key, self._timers.pop(key)[1]) for key in due]

    def flush(self) -> list[tuple[Hashable, V]]:
        """
        Release every pending value immediately, regardless of delay.
        """
        released = [(key, value) for key, (_, value) in self._timers.items()]
        self._timers.clear()
        return released
