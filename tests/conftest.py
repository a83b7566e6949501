"""
Shared fixtures: a controllable clock and fresh services per test.
"""

import random
from datetime import datetime, timedelta

import pytest

from community.core.lifecycle import ServiceLifecycleManager
from community.core.repository import InMemoryRepository
from community.core.residents import ResidentDirectory

# Monday morning; the following Saturday is 2026-10-24
MONDAY_9AM = datetime(2026, 10, 19, 9, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = MONDAY_9AM):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service_repository():
    return InMemoryRepository("services")


@pytest.fixture
def manager(service_repository, clock):
    """Lifecycle manager with a fixed clock and a seeded key suffix generator."""
    return ServiceLifecycleManager(service_repository, now=clock, rng=random.Random(42))


@pytest.fixture
def directory():
    return ResidentDirectory()
