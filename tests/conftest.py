"""
Shared pytest fixtures.

The app is built from TestConfig: memory store, CSRF and rate limiting off,
completions applied immediately and no background scheduler.
"""

from __future__ import annotations
from datetime import datetime
import pytest
from apscheduler.jobstores.base import JobLookupError

from leafy import create_app
from leafy.constants import DAY_MS
from leafy.services.reminders import ReminderRepository, build_reminder
from leafy.services.store import MemoryStore, get_store
from leafy.utils.cache import clear_identification_cache
from leafy.services import ai


def local_ms(year, month, day, hour=0, minute=0) -> int:
    """Epoch ms for a wall-clock time in the local timezone."""
    return int(datetime(year, month, day, hour, minute).timestamp() * 1000)


# Mid-day so that small offsets never cross a local midnight
NOW = local_ms(2024, 10, 15, 12)


class FakeScheduler:
    """Records jobs instead of running them; tests fire them explicitly."""

    def __init__(self):
        self.jobs = {}

    def add_job(self, func, trigger, run_date=None, args=None, id=None, name=None, replace_existing=False):
        self.jobs[id] = {"func": func, "args": args or [], "trigger": trigger, "run_date": run_date, "name": name}

    def remove_job(self, job_id):
        if job_id not in self.jobs:
            raise JobLookupError(job_id)
        del self.jobs[job_id]

    def fire(self, job_id):
        job = self.jobs.pop(job_id)
        return job["func"](*job["args"])


@pytest.fixture
def app():
    app = create_app("leafy.config.TestConfig")
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def repo(store):
    return ReminderRepository(store)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def make_reminder():
    def _make(plant_id="p1", plant_name="Monstera", reminder_type="water", interval_days=7, now=NOW):
        return build_reminder(plant_id, plant_name, reminder_type, interval_days, now=now)
    return _make


@pytest.fixture(autouse=True)
def _reset_ai_state():
    clear_identification_cache()
    ai._clear_router_cache()
    yield
    clear_identification_cache()
    ai._clear_router_cache()


@pytest.fixture
def app_store(app):
    with app.app_context():
        yield get_store()
