import os
import sys
from datetime import datetime, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.insert(0, os.path.dirname(__file__))

from fakes import (  # noqa: E402
    FakeClock,
    InMemoryJobStore,
    RecordingEventBus,
    StaticCategoryResolver,
)
from shared.engine import JobLifecycleEngine  # noqa: E402
from shared.events import EventEmitter  # noqa: E402
from shared.models import Caller, CategoryInfo  # noqa: E402

T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def store():
    return InMemoryJobStore()


@pytest.fixture
def bus():
    return RecordingEventBus()


@pytest.fixture
def categories():
    return StaticCategoryResolver([
        CategoryInfo('cat-translation', 'Translation', 'arn:aws:sns:us-east-1:123456789012:translation'),
    ])


@pytest.fixture
def engine(store, bus, categories, clock):
    ids = iter(f"job-{n}" for n in range(1, 1000))
    return JobLifecycleEngine(
        store, EventEmitter(bus), categories, clock=clock, id_factory=lambda: next(ids))


@pytest.fixture
def owner():
    return Caller('owner-1', email='owner@example.com')


@pytest.fixture
def seeker():
    return Caller('seeker-a', email='a@example.com')


@pytest.fixture
def other_seeker():
    return Caller('seeker-b', email='b@example.com')


@pytest.fixture
def admin():
    return Caller('admin-1', is_admin=True)
