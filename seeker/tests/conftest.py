"""Shared fixtures for the seeker test suite."""

import pytest

from seeker.common.accounting import RateLimiter
from seeker.tests.fakes import FakeNotionStore


@pytest.fixture
def store():
    return FakeNotionStore()


@pytest.fixture
def no_delay():
    return RateLimiter(0)
