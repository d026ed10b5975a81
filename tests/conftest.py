#!/usr/bin/env python3
"""
File: conftest.py
Author: Bastian Cerf
Date: 13/04/2025
Description:
    Declaration of shared fixtures across unit test modules.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import pytest
import pathlib
import shutil
from typing import Generator

# Internal libraries
from tests.test_constants import *
from tests.classes_mocks import FakeBackend, FakeClock
from core.credential_store import MemoryCredentialStore
from model.session_scheduler import SessionScheduler

########################################################################
#                          Assets arrangement                          #
########################################################################


@pytest.fixture
def arrange_assets():
    """
    Provide an empty test assets folder. Any previous content is removed.
    """
    assets_dst = pathlib.Path(TEST_ASSETS_DST_FOLDER)
    if assets_dst.exists():
        shutil.rmtree(assets_dst)
    assets_dst.mkdir(parents=True)


########################################################################
#                           Model fixtures                             #
########################################################################


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FakeBackend:
    """
    Get an in-memory backend answering PENDING to a registration.
    """
    return FakeBackend()


@pytest.fixture
def scheduler(backend: FakeBackend) -> Generator[SessionScheduler, None, None]:
    """
    Get a session scheduler running the fake backend.
    """
    with SessionScheduler(backend) as scheduler:
        yield scheduler


@pytest.fixture
def store() -> MemoryCredentialStore:
    """
    Get an empty credential store.
    """
    return MemoryCredentialStore()
