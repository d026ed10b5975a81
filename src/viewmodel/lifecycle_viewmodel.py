#!/usr/bin/env python3
"""
File: lifecycle_viewmodel.py
Author: Bastian Cerf
Date: 12/10/2025
Description:
    Authorization lifecycle of the client instance.

    The client registers itself on the backend, then polls its status
    at a fixed interval until an administrator approves it. Once the
    instance is active, the access token is claimed exactly once and
    the polling stops. Polling also stops when the instance is revoked
    or deactivated.

    Network failures never stop the loop: they are reported as a
    transient notice and the next attempt happens after the same fixed
    interval.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging
import platform
import time
import uuid
from abc import ABC
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, cast

# Internal libraries
from common.state_machine import *
from common.live_data import LiveData
from core.attendance.day_accountant import EmploymentTemplate
from core.backend import InstanceState, InstanceStatus
from core.credential_store import CredentialStore
from model import *

__all__ = ["InstanceLifecycleViewModel", "InstanceRecord", "DEFAULT_POLL_INTERVAL"]

logger = logging.getLogger(__name__)

# Delay between two status polls, in seconds
DEFAULT_POLL_INTERVAL = 4.0

# Maximal device name length
DEVICE_NAME_MAX_LENGTH = 60

NOTICE_REGISTER_FAILED = "Registrace zařízení se nepodařila (zkontrolujte internet)."
NOTICE_STATUS_FAILED = "Stav zařízení se nepodařilo ověřit."
NOTICE_CLAIM_FAILED = "Přístup se nepodařilo převzít."
NOTICE_DEACTIVATED = "Zařízení je deaktivováno, nové ID nelze vytvořit."


@dataclass(frozen=True)
class InstanceRecord:
    """
    Snapshot of the client instance identity and settings.
    """

    instance_id: Optional[str]
    token: Optional[str] = field(repr=False)
    display_name: Optional[str]
    state: InstanceState
    employment_template: EmploymentTemplate
    afternoon_cutoff: Optional[str]

    @property
    def authorized(self) -> bool:
        return self.token is not None and not self.state.terminal


class InstanceLifecycleViewModel(IStateMachine):
    """
    Instance lifecycle state machine. `run()` must be called at a fixed
    interval by the owner thread.
    """

    def __init__(
        self,
        scheduler: SessionScheduler,
        store: CredentialStore,
        client_type: str,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            scheduler (SessionScheduler): Runs the backend calls.
            store (CredentialStore): Instance identity storage.
            client_type (str): Client platform sent on registration.
            poll_interval (float): Delay between status polls and
                between retries, in seconds.
            clock (Callable[[], float]): Monotonic time source.
        """
        super().__init__(_RegisterState())

        self._scheduler = scheduler
        self._store = store
        self._client_type = client_type
        self._poll_interval = poll_interval
        self._clock = clock

        self._instance_state = InstanceState.UNKNOWN
        self._template = EmploymentTemplate.DPP_DPC
        self._cutoff: Optional[str] = None

        # Live data are observed by the presentation layer
        self._current_state = LiveData[str]("")
        self._lifecycle_state = LiveData[InstanceState](InstanceState.UNKNOWN)
        self._record = LiveData[InstanceRecord](self.__make_record())
        self._notice = LiveData[str]("", bus_mode=True)

    @property
    def scheduler(self) -> SessionScheduler:
        return self._scheduler

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def client_type(self) -> str:
        return self._client_type

    def now(self) -> float:
        return self._clock()

    def on_state_changed(
        self, old_state: Optional[IStateBehavior], new_state: IStateBehavior
    ):
        logger.info(f"State changed from {old_state!r} to {new_state!r}.")
        self._current_state.value = repr(new_state)

    def close(self):
        """
        Drop the running task, if any.
        """
        if isinstance(self._state, _ILifecycleState):
            self._state.exit()

    ### Instance data ###

    def __make_record(self) -> InstanceRecord:
        return InstanceRecord(
            instance_id=self._store.instance_id,
            token=self._store.instance_token,
            display_name=self._store.display_name,
            state=self._instance_state,
            employment_template=self._template,
            afternoon_cutoff=self._cutoff,
        )

    def _publish(self):
        """Publish the instance data after a change."""
        self._lifecycle_state.value = self._instance_state
        self._record.value = self.__make_record()

    @property
    def instance_state(self) -> InstanceState:
        return self._instance_state

    def _set_instance_state(self, state: InstanceState):
        if state is not self._instance_state:
            logger.info(f"Instance state is now {state}.")
        self._instance_state = state
        self._publish()

    def _apply_status(self, status: InstanceStatus):
        """Apply the status and settings read from the backend."""
        self._template = status.employment_template
        self._cutoff = status.afternoon_cutoff
        if status.display_name:
            self._store.display_name = status.display_name
        self._set_instance_state(status.status)

    def device_fingerprint(self) -> str:
        """
        Get the device fingerprint, generated once and stored.
        """
        fingerprint = self._store.device_fingerprint
        if not fingerprint:
            fingerprint = str(uuid.uuid4())
            self._store.device_fingerprint = fingerprint
        return fingerprint

    def device_info(self) -> dict[str, Any]:
        return {"platform": self._client_type, "system": platform.system()}

    def notify(self, notice: str):
        logger.warning(notice)
        self._notice.value = notice

    ### Actions ###

    def request_new_identity(self) -> bool:
        """
        Forget the instance identifier and token and register again.
        Not permitted when the instance is deactivated.

        Returns:
            bool: `True` if a new registration has been started.
        """
        if self._instance_state is InstanceState.DEACTIVATED:
            self.notify(NOTICE_DEACTIVATED)
            return False

        logger.info("New identity requested.")
        self._store.clear_identity()
        self._set_instance_state(InstanceState.UNKNOWN)
        self.transition_to(_RegisterState())
        return True

    def refresh(self):
        """
        Poll the status now. Never claims a token if one is held.
        """
        # A registration or a claim in flight must not be dropped
        if isinstance(self._state, (_RegisterState, _ClaimTokenState)):
            return
        if isinstance(self._state, _PollStatusState):
            self._state.poll_now()
            return
        self.transition_to(_PollStatusState())

    def set_device_name(self, name: str):
        """
        Store the device name sent on next registration.
        """
        self._store.device_name = name.strip()[:DEVICE_NAME_MAX_LENGTH]

    ### Observables ###

    @property
    def current_state(self) -> LiveData[str]:
        """
        Returns:
            LiveData[str]: Machine state name.
        """
        return self._current_state

    @property
    def lifecycle_state(self) -> LiveData[InstanceState]:
        """
        Returns:
            LiveData[InstanceState]: Authorization status declared by
                the backend.
        """
        return self._lifecycle_state

    @property
    def record(self) -> LiveData[InstanceRecord]:
        """
        Returns:
            LiveData[InstanceRecord]: Instance identity and settings.
        """
        return self._record

    @property
    def notice(self) -> LiveData[str]:
        """
        Returns:
            LiveData[str]: Transient notices (bus mode).
        """
        return self._notice


class _ILifecycleState(IStateBehavior, ABC):
    """
    Base lifecycle state. Tracks at most one running task, dropped on
    exit.
    """

    _handle: Optional[int] = None

    @property
    def fsm(self) -> InstanceLifecycleViewModel:
        return cast(InstanceLifecycleViewModel, self._fsm)

    def _start(self, handle: int):
        self._handle = handle

    def _result(self) -> Optional[IModelMessage]:
        if self._handle is None:
            return None
        msg = self.fsm.scheduler.get_result(self._handle)
        if msg is not None:
            self._handle = None
        return msg

    def exit(self):
        if self._handle is not None:
            self.fsm.scheduler.drop(self._handle)
            self._handle = None


class _RegisterState(_ILifecycleState):
    """
    Role:
        Register the instance if no identifier is stored.
    Entry:
        - At machine initialization
        - On new identity request
    Exit:
        - Once an identifier is known
    """

    def entry(self):
        self._retry_at = 0.0

    def do(self) -> Optional[IStateBehavior]:
        if self.fsm.store.instance_id:
            return _PollStatusState()

        if self._handle is None and self.fsm.now() >= self._retry_at:
            self._start(
                self.fsm.scheduler.start_register_task(
                    self.fsm.client_type,
                    self.fsm.device_fingerprint(),
                    self.fsm.device_info(),
                    self.fsm.store.device_name,
                )
            )

        msg = self._result()
        if isinstance(msg, InstanceRegistered):
            self.fsm.store.instance_id = msg.response.instance_id
            self.fsm._set_instance_state(msg.response.status)
            logger.info(f"Registered as instance '{msg.response.instance_id}'.")
            return _PollStatusState()
        elif isinstance(msg, ModelError):
            self.fsm.notify(NOTICE_REGISTER_FAILED)
            self._retry_at = self.fsm.now() + self.fsm.poll_interval


class _PollStatusState(_ILifecycleState):
    """
    Role:
        Poll the instance status at a fixed interval.
    Entry:
        - After registration
        - After a failed token claim
        - On refresh request
    Exit:
        - Instance active without token: claim it
        - Token held: authorized
        - Instance revoked or deactivated
    """

    def entry(self):
        self._next_poll = 0.0  # First poll immediately

    def poll_now(self):
        """Skip the remaining wait, no effect while a poll is running."""
        self._next_poll = 0.0

    def do(self) -> Optional[IStateBehavior]:
        instance_id = self.fsm.store.instance_id
        if not instance_id:
            return _RegisterState()

        if self._handle is None and self.fsm.now() >= self._next_poll:
            self._start(self.fsm.scheduler.start_status_task(instance_id))

        msg = self._result()
        if isinstance(msg, InstanceStatusRead):
            self.fsm._apply_status(msg.status)
            return self.__next_state()
        elif isinstance(msg, ModelError):
            self.fsm.notify(NOTICE_STATUS_FAILED)
            self._next_poll = self.fsm.now() + self.fsm.poll_interval

    def __next_state(self) -> Optional[IStateBehavior]:
        state = self.fsm.instance_state
        if state is InstanceState.REVOKED:
            return _RevokedState()
        if state is InstanceState.DEACTIVATED:
            return _DeactivatedState()
        if self.fsm.store.instance_token:
            return _AuthorizedState()
        if state is InstanceState.ACTIVE:
            return _ClaimTokenState()

        # Still waiting for approval
        self._next_poll = self.fsm.now() + self.fsm.poll_interval
        return None


class _ClaimTokenState(_ILifecycleState):
    """
    Role:
        Claim the access token of the approved instance.
    Entry:
        - Instance is active and no token is held
    Exit:
        - Token obtained
        - Claim failed, back to polling
    """

    def entry(self):
        instance_id = self.fsm.store.instance_id
        # Claim only once: never while a token is held
        if instance_id and not self.fsm.store.instance_token:
            self._start(self.fsm.scheduler.start_claim_task(instance_id))

    def do(self) -> Optional[IStateBehavior]:
        if self._handle is None:
            return _PollStatusState()

        msg = self._result()
        if isinstance(msg, TokenClaimed):
            self.fsm.store.instance_token = msg.response.instance_token
            self.fsm.store.display_name = msg.response.display_name
            self.fsm._publish()
            logger.info("Access token claimed.")
            return _AuthorizedState()
        elif isinstance(msg, ModelError):
            self.fsm.notify(NOTICE_CLAIM_FAILED)
            return _WaitState()


class _WaitState(_ILifecycleState):
    """
    Role:
        Wait one poll interval before polling again.
    Entry:
        - After a failed token claim
    Exit:
        - Once the interval is elapsed
    """

    def entry(self):
        self._leave_at = self.fsm.now() + self.fsm.poll_interval

    def do(self) -> Optional[IStateBehavior]:
        if self.fsm.now() >= self._leave_at:
            return _PollStatusState()


class _AuthorizedState(_ILifecycleState):
    """
    Role:
        Token held, the attendance engine may be used. No polling.
    """

    pass


class _RevokedState(_ILifecycleState):
    """
    Role:
        Access revoked by an administrator. No polling, a new identity
        can be requested.
    """

    pass


class _DeactivatedState(_ILifecycleState):
    """
    Role:
        Instance deactivated. No polling, no new identity.
    """

    pass
