#!/usr/bin/env python3
"""
File: state_machine.py
Author: Bastian Cerf
Date: 14/10/2025
Description:
    Base interfaces to build a polled finite state machine.

    The machine owner calls `run()` at a fixed interval. The current
    state `do()` method is executed on each call and may return the
    next state. States can also be forced from outside the machine with
    `transition_to()`, typically on a user action.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
from abc import ABC
from typing import Optional


class IStateBehavior(ABC):
    """
    Base interface that defines how a state behaves.

    A state holds a reference to its parent state machine once it has
    been entered. Subclasses usually expose it through a typed `fsm`
    property.
    """

    _fsm: "IStateMachine"

    def _set_fsm(self, value: "IStateMachine"):
        """Internal use only: set the state machine reference"""
        self._fsm = value

    def entry(self):
        """
        Called once when the state is entered.
        """
        pass

    def do(self) -> Optional["IStateBehavior"]:
        """
        Called on each `run()` while the state is active.

        Returns:
            Optional[IStateBehavior]: The next state if a transition
                must be performed.
        """
        pass

    def exit(self):
        """
        Called once when the state is left.
        """
        pass

    def __repr__(self):
        # Class name without the leading underscore of private states
        return self.__class__.__name__.lstrip("_")


class IStateMachine(ABC):
    """
    Base class running a finite state machine.

    The initial state is entered lazily on the first `run()` call, so
    that subclasses can finish their initialization before any state
    code executes.
    """

    def __init__(self, init_state: IStateBehavior):
        """
        Args:
            init_state (IStateBehavior): Initial state.
        """
        self._init_state = init_state
        self._state: Optional[IStateBehavior] = None

    @property
    def state(self) -> Optional[IStateBehavior]:
        """
        Returns:
            Optional[IStateBehavior]: The active state, `None` before
                the first `run()`.
        """
        return self._state

    def __make_transition(self, state: IStateBehavior):
        """
        Exit the active state and enter the new one.
        """
        old_state = self._state
        if old_state:
            old_state.exit()

        self._state = state
        self._state._set_fsm(self)
        self._state.entry()

        self.on_state_changed(old_state, self._state)

    def transition_to(self, state: IStateBehavior):
        """
        Force a transition from outside the running state.

        Args:
            state (IStateBehavior): State to enter.
        """
        self.__make_transition(state)

    def run(self):
        """
        Run the state machine once. Perform a state transition if the
        active state asks for it.
        """
        if self._state is None:
            self.__make_transition(self._init_state)

        assert self._state is not None
        next_state = self._state.do()
        if next_state:
            self.__make_transition(next_state)

    def on_state_changed(
        self, old_state: Optional[IStateBehavior], new_state: IStateBehavior
    ):
        """
        Override to be notified on state transitions.

        Args:
            old_state (Optional[IStateBehavior]): Previous state, `None`
                on the first transition.
            new_state (IStateBehavior): Entered state.
        """
        pass
