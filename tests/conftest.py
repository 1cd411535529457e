"""Common test fixtures for the Notekeep server."""

import pytest

from notekeep.config import config
from notekeep.models.db_models import init_db
from notekeep.services.auth_service import AuthGate
from notekeep.services.note_service import NoteService
from notekeep.services.workspace import Workspace
from notekeep.storage.credential_repository import CredentialRepository
from notekeep.storage.kv_store import KeyValueStore
from notekeep.storage.note_repository import NoteRepository


@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Restrict anyio tests to asyncio only (trio is not installed)."""
    return request.param


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point the config at a temporary database (auto-restored)."""
    monkeypatch.setattr(config, "database_path", tmp_path / "test_notekeep.db")
    monkeypatch.setattr(config, "auth_delay_seconds", 0.0)
    yield config


@pytest.fixture
def engine(test_config):
    """Engine with the key/value table created."""
    engine = init_db(test_config.get_db_url())
    yield engine
    engine.dispose()


@pytest.fixture
def kv_store(engine):
    return KeyValueStore(engine=engine)


@pytest.fixture
def note_repository(kv_store):
    return NoteRepository(kv_store)


@pytest.fixture
def credential_repository(kv_store):
    return CredentialRepository(kv_store)


@pytest.fixture
def note_service(note_repository):
    """A note service with the partition of 'user-1' open."""
    service = NoteService(note_repository)
    service.open("user-1")
    yield service


@pytest.fixture
def auth_gate(credential_repository):
    return AuthGate(credential_repository, delay=0)


@pytest.fixture
def workspace(kv_store):
    return Workspace(store=kv_store, auth_delay=0)
