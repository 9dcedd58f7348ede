"""Common test fixtures for the notekeep collection manager."""

import pytest

from notekeep.config import config
from notekeep.database import Database
from notekeep.storage.item_store import MemoryItemStore
from tests.fakes import RecordingPublisher


@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Restrict anyio tests to asyncio only (trio is not installed)."""
    return request.param


@pytest.fixture
def stores():
    """Item stores created for the test database, keyed by collection name."""
    return {}


@pytest.fixture
def db(stores):
    """An in-memory database whose item stores are exposed via ``stores``."""

    def factory(name):
        stores[name] = MemoryItemStore(name)
        return stores[name]

    return Database(factory)


@pytest.fixture
def notes(db):
    return db.notes


@pytest.fixture
def published(db):
    """Events published on the database channel, as (name, payload) pairs."""
    recorder = RecordingPublisher()
    recorder.attach(db.events)
    return recorder.events


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Configure with test paths (auto-restored even on crash)."""
    monkeypatch.setattr(config, "database_path", tmp_path / "db" / "notekeep.db")
    monkeypatch.setattr(config, "log_dir", tmp_path / "logs")
    monkeypatch.setattr(config, "in_memory_db", False)
    yield config
