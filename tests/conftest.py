"""Shared fixtures for the paranoid test suite."""

from datetime import datetime, timedelta

import pytest
from sample_models import HOOK_CALLS, Base
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from paranoid_toolkit.config import set_config
from paranoid_toolkit.soft_delete import events
from paranoid_toolkit.soft_delete import models as paranoid_models
from paranoid_toolkit.soft_delete import services as paranoid_services


class FrozenClock:
    """Stand-in for ``utcnow`` that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def db_session():
    """Create an in-memory SQLite database session for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def clock(monkeypatch):
    """Freeze the time written into time markers."""
    frozen = FrozenClock(datetime(2024, 3, 1, 12, 0, 0))
    monkeypatch.setattr(paranoid_models, "utcnow", frozen)
    monkeypatch.setattr(paranoid_services, "utcnow", frozen)
    return frozen


@pytest.fixture
def hook_calls():
    """Calls recorded by the class-body hooks of Journal."""
    HOOK_CALLS.clear()
    yield HOOK_CALLS
    HOOK_CALLS.clear()


@pytest.fixture
def hook_listener():
    """Register hook listeners that are removed after the test."""
    registered = []

    def register(record_type, name, fn):
        events.listen(record_type, name, fn)
        registered.append((record_type, name, fn))
        return fn

    yield register

    for record_type, name, fn in registered:
        events.remove(record_type, name, fn)


@pytest.fixture(autouse=True)
def reset_settings():
    """Restore package defaults after each test."""
    yield
    set_config(None)
