"""Shared pytest fixtures for seo-monitor tests."""

import dataclasses
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Ensure project root is on sys.path so 'seo_monitor' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)


@pytest.fixture(autouse=True)
def _reset_db_engine():
    """Autouse fixture: reset the global DB engine before and after every test.

    This prevents cross-test pollution when tests create their own in-memory
    databases.
    """
    from seo_monitor.database import reset_engine
    reset_engine()
    yield
    reset_engine()


@pytest.fixture()
def test_db():
    """Provide an in-memory SQLite database with all tables created.

    Yields a database URL string. The engine is automatically torn down
    after the test by the autouse ``_reset_db_engine`` fixture.
    """
    from seo_monitor.database import reset_engine, init_db
    reset_engine()
    db_url = "sqlite:///:memory:"
    init_db(database_url=db_url, echo=False)
    yield db_url


# ---------------------------------------------------------------------------
# Page metadata
# ---------------------------------------------------------------------------

def build_page(page_id=1, **overrides):
    """Return a PageMetadata that passes every check (score 100)."""
    from seo_monitor.scoring import PageMetadata
    values = {
        "id": page_id,
        "title": f"Complete guide to topic {page_id or 0:03d} for readers",
        "description": "d" * 130,
        "keywords": ["seo", "blog", "metadata", "search", "ranking"],
        "og_image": "https://example.com/og.jpg",
        "canonical_url": f"https://example.com/articles/{page_id}",
        "structured_data": {"@type": "Article"},
        "page_type": "article",
        "page_url": f"https://example.com/articles/{page_id}",
    }
    values.update(overrides)
    return PageMetadata(**values)


@pytest.fixture()
def make_page():
    return build_page


# ---------------------------------------------------------------------------
# Monitoring collaborators
# ---------------------------------------------------------------------------

class FakeClock:
    """Controllable replacement for the monitor's clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, minutes):
        self.now = self.now + timedelta(minutes=minutes)


class FakeMetricStore:
    """In-memory MetricStore.

    ``fail_queries`` holds type tuples whose queries raise StoreError;
    ``fail_insert`` makes every alert insert raise.
    """

    def __init__(self):
        self.records = []
        self.alerts = []
        self.queries = []
        self.fail_queries = set()
        self.fail_insert = False

    def add(self, metric_type, **context):
        from seo_monitor.store import MetricRecord
        self.records.append(MetricRecord(type=metric_type, context=context))

    def query_records(self, since, types):
        from seo_monitor.store import StoreError
        types = tuple(types)
        self.queries.append((since, types))
        if types in self.fail_queries:
            raise StoreError("store unreachable")
        return [r for r in self.records if r.type in types]

    def insert_alert(self, record):
        from seo_monitor.store import StoreError
        if self.fail_insert:
            raise StoreError("insert failed")
        saved = dataclasses.replace(record, id=len(self.alerts) + 1)
        self.alerts.append(saved)
        return saved

    def list_alerts(self, acknowledged=False, limit=10):
        matching = [a for a in self.alerts if a.acknowledged == acknowledged]
        return list(reversed(matching))[:limit]

    def acknowledge_alert(self, alert_id):
        for index, alert in enumerate(self.alerts):
            if alert.id == alert_id:
                self.alerts[index] = dataclasses.replace(alert, acknowledged=True)
                return True
        return False


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def fake_store():
    return FakeMetricStore()


@pytest.fixture()
def log_sink():
    """Mock LogSink that records emitted entries."""
    return MagicMock()


@pytest.fixture()
def monitor(fake_store, clock, log_sink):
    """AlertMonitor wired to in-memory collaborators and a mock scheduler."""
    from seo_monitor.monitoring import AlertMonitor
    from seo_monitor.scheduler import MonitorScheduler
    return AlertMonitor(
        store=fake_store,
        log_sink=log_sink,
        clock=clock,
        scheduler=MagicMock(spec=MonitorScheduler),
    )
