#!/usr/bin/env python3
"""
File: live_data.py
Author: Bastian Cerf
Date: 14/10/2025
Description:
    A live data is a holder of a value of generic type that can be
    observed as defined by the observer pattern. Viewmodels publish
    immutable values (strings, enums, frozen dataclasses) through live
    data and the presentation layer subscribes to them.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging
from typing import Generic, TypeVar, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")  # Generic type declaration


class LiveData(Generic[T]):
    """
    Observable value of type T.

    Observers are notified in subscription order. In bus mode they are
    notified each time a value is set, even if equal to the previous
    one, which makes the live data suitable to carry events (such as
    transient notices). Otherwise observers are notified on change only.
    """

    def __init__(self, value: T, bus_mode: bool = False):
        """
        Args:
            value (T): Initial value.
            bus_mode (bool): Enable/disable bus mode.
        """
        self._value = value
        self._bus_mode = bus_mode
        self._observers: list[Callable[[T], None]] = []

    def observe(
        self, observer: Callable[[T], None], init_call: bool = False
    ) -> Callable[[], None]:
        """
        Subscribe an observer.

        Args:
            observer (Callable[[T], None]): Callback receiving new values.
            init_call (bool): `True` to call the observer immediately
                with the current value.

        Returns:
            Callable[[], None]: Function removing the subscription.
        """
        if observer not in self._observers:
            self._observers.append(observer)
        if init_call:
            observer(self._value)

        return lambda: self.remove(observer)

    def remove(self, observer: Callable[[T], None]):
        """
        Remove an observer. Unknown observers are ignored.
        """
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, value: T):
        """
        Change the value and notify the observers.
        """
        if not self._bus_mode and self._value == value:
            return

        self._value = value
        # Copy: an observer may unsubscribe itself while being notified
        for observer in list(self._observers):
            observer(value)
