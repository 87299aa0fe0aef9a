"""Fixtures for scheduling tests."""

from datetime import timedelta

import pytest

from connwatch.core.scheduling import PollingDispatcher, ScheduleRunner


class FakeBackend:
    """Backend that never ticks on its own; tests drive ``run_once``."""

    name = "fake"

    def __init__(self):
        self.started_with = None
        self.start_calls = 0
        self.stop_calls = 0

    def start(self, tick_callback, interval_seconds=60.0):
        self.start_calls += 1
        self.started_with = (tick_callback, interval_seconds)

    def stop(self):
        self.stop_calls += 1

    def health(self):
        return {
            "healthy": self.start_calls > self.stop_calls,
            "backend": self.name,
            "tick_count": 0,
            "last_tick": None,
        }


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def runner(store, probe_service):
    return ScheduleRunner(store, probe_service)


@pytest.fixture
def dispatcher(store, runner, planner, fake_backend):
    return PollingDispatcher(store, runner, planner, backend=fake_backend, interval_seconds=0.1)


@pytest.fixture
def due_schedule(store, application, fixed_now):
    """Enabled every-15-minutes schedule that came due a minute ago."""
    return store.upsert_schedule(application.id, "*/15 * * * *", True, fixed_now - timedelta(minutes=1))
