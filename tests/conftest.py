"""Shared fixtures for pylitedoc tests."""
import pytest

from pylitedoc.config import Settings
from pylitedoc.database import Database
from pylitedoc.storage import LockTable


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment, rooted in a temp directory."""
    return Settings(data_dir=str(tmp_path / "data"), lock_timeout=5.0, fsync=False)


@pytest.fixture
def locks():
    return LockTable()


@pytest.fixture
def db(tmp_path, settings, locks):
    return Database(tmp_path / "data", settings=settings, locks=locks)


@pytest.fixture
def users(db):
    return db.model("users", {"name": "string", "age": {"type": "number", "default": 18}, "tags": "array"})


@pytest.fixture
def kv(db):
    return db.model("kv", kind="map")
